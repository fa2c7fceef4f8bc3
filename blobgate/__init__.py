"""blobgate - authorization and content-addressed storage for a Nostr relay with Blossom blobs."""

__version__ = "0.1.0"
