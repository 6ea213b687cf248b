class InvalidDimensions(ValueError):
    """Pixel buffer length does not match width * height * 4, or a size is not positive."""


class ImageLoadError(OSError):
    """The source image could not be fetched, read or decoded."""


class QrRenderError(RuntimeError):
    """The payload could not be rendered as a QR code."""


class SessionStateError(RuntimeError):
    """A scan session was asked to make an illegal lifecycle transition."""
