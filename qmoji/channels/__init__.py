"""Chat gateway clients."""
