class HuffmanError(ValueError):
    """Base class for failures raised by the Huffman codec."""


class MalformedStreamError(HuffmanError):
    """The serialized tree at the start of a stream cannot be decoded."""


class TruncatedPayloadError(HuffmanError):
    """The payload ended before the end-of-stream code was read."""
