"""
Generate a VAPID key pair for web push notifications

Usage:
    python generate_vapid_keys.py [--email mailto:you@example.com]

The public key is the base64url uncompressed P-256 point the browser passes
to PushManager.subscribe(). The private key is PEM, base64url encoded so it
fits on one .env line; PushService decodes it back.
"""
import argparse
import base64
from typing import Dict

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("utf-8").rstrip("=")


def generate_vapid_keys() -> Dict[str, str]:
    """Return a fresh {"public_key", "private_key"} pair"""
    private_key = ec.generate_private_key(ec.SECP256R1())

    public_bytes = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )

    return {
        "public_key": _b64url(public_bytes),
        "private_key": _b64url(private_pem),
    }


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate VAPID keys for web push")
    parser.add_argument("--email", default="mailto:noreply@habitpush.app", help="VAPID contact (sub claim)")
    args = parser.parse_args()

    keys = generate_vapid_keys()

    print("=" * 60)
    print("Add these to your .env file:\n")
    print(f"VAPID_PUBLIC_KEY={keys['public_key']}")
    print(f"VAPID_PRIVATE_KEY={keys['private_key']}")
    print(f"VAPID_EMAIL={args.email}")
    print("=" * 60)
    print("Keep the private key out of version control.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
