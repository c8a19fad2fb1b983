from .client import SUI_COIN_TYPE, SuiClient

__all__ = ["SUI_COIN_TYPE", "SuiClient"]
