"""Resolution engine: build identity, verified downloads, extraction, policy."""
