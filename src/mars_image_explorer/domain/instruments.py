"""Rover instruments that images can be browsed by."""

from dataclasses import dataclass

DEFAULT_MISSION = "curiosity"
DEFAULT_INSTRUMENT = "fcam"


@dataclass(frozen=True)
class Instrument:
    """A camera instrument and its display name."""

    id: str
    name: str


INSTRUMENTS: dict[str, Instrument] = {
    "fcam": Instrument(id="fcam", name="Front Hazcam"),
    "ccam": Instrument(id="ccam", name="Chemcam RMI"),
    "mastcam_right": Instrument(id="mastcam_right", name="Right Mastcam"),
    "mastcam_left": Instrument(id="mastcam_left", name="Left Mastcam"),
    "mahli": Instrument(id="mahli", name="MAHLI"),
    "mardi": Instrument(id="mardi", name="MARDI"),
}


def mission_instrument(mission: str, instrument: str) -> str:
    """Build the partition key that groups a mission's instrument images."""
    return f"{mission}+{instrument}"
