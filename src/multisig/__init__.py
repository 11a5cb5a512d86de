"""Multisig vault — N-of-M approval and one-time execution of proposed actions."""

__version__ = "0.1.0"
