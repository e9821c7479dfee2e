"""Supervise an ADB server and serve one USB-attached VR headset at a time."""

__version__ = "0.1.0"
