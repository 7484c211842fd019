"""farmvoice - voice capture for the farm dashboard notes."""

__version__ = "0.1.0"
