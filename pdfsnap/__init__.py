"""pdfsnap: fill PDF templates with text, signatures, images and verification links."""

__version__ = "0.1.0"
