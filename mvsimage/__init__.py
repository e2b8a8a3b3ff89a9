"""Calibrated photographs for multi-view stereo: cameras, image pyramids and texture sampling."""

__version__ = "0.1.0"
__all__ = ["camera", "imageio", "processing", "sampling", "pyramid", "image", "photo", "photoset"]