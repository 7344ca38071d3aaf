"""Parser for packet timing traces."""

import logging
import re
from typing import Dict, List

from .exceptions import TraceFormatError
from .models import PacketTiming

LOG = logging.getLogger(__name__)

# "# components: parser,router,forwarder" fixes the registration order
COMPONENTS_HEADER_PATTERN = re.compile(r'^#\s*components\s*:\s*(.*)$', re.IGNORECASE)
STAGE_PATTERN = re.compile(r'^([^=\s]+)=(\d+)$')


class TraceParser:
    """Parser for packet timing traces.

    Each non-comment line describes one packet::

        <timestamp_ns> <total_ns> <component>=<duration_ns> [...]
    """

    def __init__(self, file_path: str):
        """Initialize the parser.

        Args:
            file_path: Path to the timing trace file
        """
        self.file_path = file_path
        self.packets: List[PacketTiming] = []
        self.component_ids: List[str] = []

    def parse(self) -> List[PacketTiming]:
        """Parse the trace file and return the packets in file order."""
        with open(self.file_path, 'r', encoding='utf-8') as f:
            lines = f.read().splitlines()

        declared: List[str] = []
        header_line = 0
        seen: Dict[str, None] = {}
        self.packets = []

        for line_number, raw in enumerate(lines, start=1):
            line = raw.strip()
            if not line:
                continue
            if line.startswith('#'):
                header_match = COMPONENTS_HEADER_PATTERN.match(line)
                if header_match:
                    declared = [name.strip() for name in header_match.group(1).split(',') if name.strip()]
                    header_line = line_number
                continue

            packet = self._parse_packet_line(line, line_number)
            for component in packet.stages:
                seen.setdefault(component, None)
            self.packets.append(packet)

        if declared:
            undeclared = [name for name in seen if name not in declared]
            if undeclared:
                raise TraceFormatError(header_line, f"Components not listed in header: {', '.join(undeclared)}")
            self.component_ids = declared
        else:
            self.component_ids = list(seen)

        LOG.debug("Parsed %d packet(s) over %d component(s) from %s",
                  len(self.packets), len(self.component_ids), self.file_path)
        return self.packets

    def _parse_packet_line(self, line: str, line_number: int) -> PacketTiming:
        fields = line.split()
        if len(fields) < 2:
            raise TraceFormatError(line_number, "expected '<timestamp_ns> <total_ns> [component=ns ...]'")

        timestamp_ns = self._parse_int(fields[0], 'timestamp', line_number)
        total_ns = self._parse_int(fields[1], 'total duration', line_number)

        stages: Dict[str, int] = {}
        for field in fields[2:]:
            stage_match = STAGE_PATTERN.match(field)
            if not stage_match:
                raise TraceFormatError(line_number, f"invalid stage '{field}'")
            component, duration = stage_match.group(1), int(stage_match.group(2))
            if component in stages:
                raise TraceFormatError(line_number, f"component '{component}' repeated")
            stages[component] = duration

        if self.packets and timestamp_ns < self.packets[-1].timestamp_ns:
            raise TraceFormatError(line_number, "timestamps must not go backwards")

        return PacketTiming(timestamp_ns=timestamp_ns, total_ns=total_ns, stages=stages)

    @staticmethod
    def _parse_int(value: str, name: str, line_number: int) -> int:
        try:
            number = int(value)
        except ValueError:
            raise TraceFormatError(line_number, f"{name} '{value}' is not an integer") from None
        if number < 0:
            raise TraceFormatError(line_number, f"{name} must be non-negative")
        return number
