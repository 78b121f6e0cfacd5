"""
The ordered registry of probes, grouped by report section.
"""

import logging
from dataclasses import replace
from typing import Dict, Iterable, Iterator, List, Tuple

from ..models.probe import Probe
from ..validation import ValidationError, validate_probe_name

logger = logging.getLogger(__name__)

# Canonical section order and the titles shown in the reports.
SECTION_TITLES: Dict[str, str] = {
    "system": "System Information",
    "performance": "Performance",
    "services": "Services & systemd",
    "tomcat": "Tomcat",
    "postgresql": "PostgreSQL",
    "logs": "Logs & System Messages",
    "network": "Network",
    "packages": "Packages",
}
SECTION_ORDER: Tuple[str, ...] = tuple(SECTION_TITLES)


def section_title(section: str) -> str:
    """Display title of a section; unknown sections are shown as-is."""
    return SECTION_TITLES.get(section, section)


class SectionRegistry:
    """
    Probes in registration order, which is also execution and rendering order.

    Probe names are unique across the whole registry because they identify
    results and output files.
    """

    def __init__(self):
        self._entries: List[Tuple[str, Probe]] = []
        self._names: Dict[str, str] = {}
        self._sinks: Dict[str, str] = {}

    def register(self, section_name: str, probe: Probe) -> Probe:
        """
        Add a probe to a section.

        Args:
            section_name: Section the probe is reported under
            probe: The probe; its ``section`` is set to ``section_name``

        Returns:
            The registered probe

        Raises:
            ValidationError: If the probe name or output sink is invalid or
                already registered
        """
        if not section_name:
            raise ValidationError("section name must be a non-empty string", field_name="section")
        validate_probe_name(probe.name, existing_names=self._names, field_name="probe name")
        validate_probe_name(probe.output_sink, field_name=f"output sink of '{probe.name}'")
        if probe.output_sink in self._sinks:
            raise ValidationError(
                f"output sink '{probe.output_sink}' of '{probe.name}' is already used by "
                f"'{self._sinks[probe.output_sink]}'",
                field_name="output_sink",
                value=probe.output_sink,
            )

        if probe.section != section_name:
            probe = replace(probe, section=section_name)
        self._entries.append((section_name, probe))
        self._names[probe.name] = section_name
        self._sinks[probe.output_sink] = probe.name
        logger.debug(f"Registered probe '{probe.name}' in section '{section_name}'")
        return probe

    def all(self) -> List[Tuple[str, Probe]]:
        """Every (section, probe) pair in registration order."""
        return list(self._entries)

    def sections(self) -> List[str]:
        """Section names in order of first registration."""
        seen: List[str] = []
        for section, _ in self._entries:
            if section not in seen:
                seen.append(section)
        return seen

    def probes(self, section_name: str) -> List[Probe]:
        return [probe for section, probe in self._entries if section == section_name]

    def filter(self, section_keys: Iterable[str]) -> "SectionRegistry":
        """A new registry holding only the given sections, order preserved."""
        wanted = set(section_keys)
        filtered = SectionRegistry()
        for section, probe in self._entries:
            if section in wanted:
                filtered.register(section, probe)
        return filtered

    def __contains__(self, probe_name: str) -> bool:
        return probe_name in self._names

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Tuple[str, Probe]]:
        return iter(self.all())
