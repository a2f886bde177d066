"""PulleyLab: rope-and-pulley dynamics for interactive visualization."""

__version__ = "1.0.0"
