"""Gadget - interactive terminal toolkit for Android devices and emulators."""

__version__ = "0.1.0"
