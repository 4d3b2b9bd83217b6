"""客户端任务标识规范化

规范形态：UUID 文本，5 段连字符分隔的十六进制（8-4-4-4-12，共 36 字符），
大小写不敏感。复合标识（如 "<uuid>-<suffix>"）取前 5 段截取。
"""

import re
import unicodedata

from .config import MAX_CLIENT_ID_LENGTH
from .exceptions import InvalidIdentifierError
from .models import IdentifierKind, NormalizedId

CANONICAL_SEGMENT_LENGTHS: tuple[int, ...] = (8, 4, 4, 4, 12)
CANONICAL_LENGTH: int = sum(CANONICAL_SEGMENT_LENGTHS) + len(CANONICAL_SEGMENT_LENGTHS) - 1
SEGMENT_DELIMITER = "-"

_CANONICAL_PATTERN = re.compile(
    "^"
    + SEGMENT_DELIMITER.join(f"[0-9a-fA-F]{{{n}}}" for n in CANONICAL_SEGMENT_LENGTHS)
    + "$"
)


def is_canonical(value: str) -> bool:
    """是否为规范形态标识"""
    return bool(_CANONICAL_PATTERN.match(value))


def normalize(raw: str) -> NormalizedId | None:
    """从客户端原始标识提取规范形态

    Args:
        raw: 任意字符串

    Returns:
        NormalizedId；无法提取规范形态时返回 None（即“不是标识”）
    """
    if not raw or len(raw) < CANONICAL_LENGTH:
        return None

    if is_canonical(raw):
        return NormalizedId(value=raw, kind=IdentifierKind.EXACT, raw=raw)

    segments = raw.split(SEGMENT_DELIMITER)
    if len(segments) <= len(CANONICAL_SEGMENT_LENGTHS):
        return None

    candidate = SEGMENT_DELIMITER.join(segments[: len(CANONICAL_SEGMENT_LENGTHS)])
    if not is_canonical(candidate):
        return None
    return NormalizedId(value=candidate, kind=IdentifierKind.DERIVED, raw=raw)


def validate_client_id(raw: str | None) -> str:
    """校验路径中的任务标识结构

    Returns:
        原样返回的标识

    Raises:
        InvalidIdentifierError: 标识缺失、超长或包含空白/控制字符
    """
    if raw is None or not raw.strip():
        raise InvalidIdentifierError(raw or "", "identifier is empty")
    if len(raw) > MAX_CLIENT_ID_LENGTH:
        raise InvalidIdentifierError(
            raw[:MAX_CLIENT_ID_LENGTH],
            f"identifier exceeds {MAX_CLIENT_ID_LENGTH} characters",
        )
    for ch in raw:
        if ch.isspace() or unicodedata.category(ch).startswith("C"):
            raise InvalidIdentifierError(
                raw, "identifier contains whitespace or control characters"
            )
    return raw
