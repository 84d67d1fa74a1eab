from .session import TokenEntry, WalletSession

__all__ = ["WalletSession", "TokenEntry"]
