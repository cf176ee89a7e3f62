"""Terminal browser for the F1TV video-on-demand catalog."""

__version__ = "0.1.0"
