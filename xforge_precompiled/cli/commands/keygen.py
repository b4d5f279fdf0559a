"""``xforge-precompiled keygen`` — generate an Ed25519 release signing key.

Prints ``key=value`` lines so the output can be piped straight into a
secrets store.  The public key goes into ``xforge.yaml``; the private key
stays with the release pipeline.
"""

from __future__ import annotations

import typer

from xforge_precompiled.bridge.crypto_bridge import generate_keypair


def keygen_cmd() -> None:
    """Generate a signing key-pair for precompiled releases."""
    private_key, public_key = generate_keypair()
    typer.echo(f"public_key={public_key}")
    typer.echo(f"private_key={private_key}")
