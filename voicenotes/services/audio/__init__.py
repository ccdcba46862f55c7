"""
Audio module - Audio file processing utilities.
"""

from .processor import AudioProcessor

__all__ = ["AudioProcessor"]
