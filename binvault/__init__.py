"""binvault — prebuilt database engine binaries, provisioned on demand."""

__version__ = "0.1.0"
