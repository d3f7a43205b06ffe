"""Timetrack - work interval segmentation and approval engine."""

__version__ = "0.1.0"
