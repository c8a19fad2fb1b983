"""Address and token validation, applied before any network call."""
from __future__ import annotations

import re

from .errors import ValidationError
from .models import ChainFamily, ChainId, TokenRef

_EVM_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_SUI_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{1,64}$")
_SUI_COIN_TYPE_RE = re.compile(r"^0x[0-9a-fA-F]{1,64}::\w+::\w+$")
_BASE58_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


def is_valid_address(address: str, chain: ChainId) -> bool:
    family = chain.info.family
    if family is ChainFamily.EVM:
        return bool(_EVM_ADDRESS_RE.match(address))
    if family is ChainFamily.SOLANA:
        return bool(_BASE58_RE.match(address))
    return bool(_SUI_ADDRESS_RE.match(address))


def validate_address(address: str, chain: ChainId) -> str:
    """Return the stripped address or raise ValidationError."""
    candidate = (address or "").strip()
    if not is_valid_address(candidate, chain):
        raise ValidationError(f"Invalid {chain.info.name} address: {address!r}")
    return candidate


def validate_token(token: TokenRef) -> TokenRef:
    if not token.symbol:
        raise ValidationError("Token symbol must not be empty")
    if not 0 <= token.decimals <= 36:
        raise ValidationError(
            f"Token {token.symbol} has out-of-range decimals: {token.decimals}"
        )
    contract = token.contract_address.strip()
    if token.chain.info.family is ChainFamily.SUI:
        valid = bool(_SUI_COIN_TYPE_RE.match(contract))
    else:
        valid = is_valid_address(contract, token.chain)
    if not valid:
        raise ValidationError(
            f"Invalid {token.chain.info.name} token address for {token.symbol}: "
            f"{token.contract_address!r}"
        )
    return token
