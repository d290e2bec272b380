"""Intent Escrow SDK.

Client-side codec for the intent escrow settler: EIP-712 hashing and signing
requests, Permit2 structures, settler actions and execute() payloads.
"""

__version__ = "0.1.0"
