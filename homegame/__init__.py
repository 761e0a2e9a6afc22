"""homegame: poker home game settlement and chip distribution."""

__version__ = "1.0.0"
