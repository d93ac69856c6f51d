"""
Token type classification from pool configuration.

Fee tier rules take precedence over the hook rule.
"""
from .models import TokenType

BASE_APP_FEE = 3000   # 0.3% fee common for Base App launches
ZORA_FEE = 10000      # 1% fee used by Zora coins

EMPTY_HOOK_VALUES = ("", "0x", "0x0", "0x" + "0" * 40)


def has_hook(hook_payload) -> bool:
    if hook_payload is None:
        return False
    if isinstance(hook_payload, (bytes, bytearray)):
        return len(hook_payload) > 0
    return str(hook_payload).strip().lower() not in EMPTY_HOOK_VALUES


def classify_token(fee: int, hook_payload=b"") -> TokenType:
    if fee == BASE_APP_FEE:
        return TokenType.BASE_APP
    if fee == ZORA_FEE:
        return TokenType.ZORA
    if has_hook(hook_payload):
        return TokenType.HOOKED
    return TokenType.STANDARD
