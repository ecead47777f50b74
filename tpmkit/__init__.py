"""TPM 2.0 response codes, wire marshalling and a minimal command-processing context."""

__version__ = "0.1.0"

__all__ = [
    "buffers",
    "context",
    "drbg",
    "errors",
    "marshal",
    "req_resp",
    "structs",
    "variants",
]