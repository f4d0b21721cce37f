"""pulse 文字列から coordinates を抽出する.

旧形式の stand は `pulse` という自由形式の識別子を持っており、
owner / rule / scheduled の3要素を以下のいずれかの形で埋め込んでいます。

- `urn:facebook:123:rule-x:2013-08-28T18:05:00Z`（urn: で始まるコロン区切り）
- `2013-08-29T19:25:00Z urn:facebook:123 rule-x`（スペース区切り）
- `2013-08-28T20:35:00Z:urn:facebook:123:rule-x`（2013 で始まるコロン区切り）

タイムスタンプ自体がコロンを含むため、コロン区切りの分割は位置ベースで行います。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

URN_PREFIX = "urn:"
LEGACY_TIME_PREFIX = "2013"

# コロン区切り形式は owner(3) + rule(1) + scheduled(3) の7要素
_COLON_PARTS = 7
_SPACE_PARTS = 3


@dataclass(frozen=True)
class Coordinates:
    """stand の座標（owner / rule / scheduled）."""

    owner: str
    rule: str
    scheduled: str

    def as_document(self) -> dict[str, str]:
        """ストアに書き込む形（dict）に変換する."""
        return {"owner": self.owner, "rule": self.rule, "scheduled": self.scheduled}


def _complete(owner: str, rule: str, scheduled: str) -> Coordinates | None:
    if not owner or not rule or not scheduled:
        return None
    return Coordinates(owner=owner, rule=rule, scheduled=scheduled)


def parse_pulse(pulse: str) -> Coordinates | None:
    """pulse 文字列を Coordinates に変換する.

    Args:
        pulse: 旧形式の pulse 文字列

    Returns:
        認識できた場合は Coordinates、未知の形式なら None

    Examples:
        >>> parse_pulse("urn:facebook:1:rultor-on-commit:2013-08-28T18:05:00Z").rule
        'rultor-on-commit'
        >>> parse_pulse("garbage") is None
        True
    """
    if pulse.startswith(URN_PREFIX):
        parts = pulse.split(":")
        if len(parts) != _COLON_PARTS:
            return None
        return _complete(
            owner=":".join(parts[0:3]),
            rule=parts[3],
            scheduled=":".join(parts[4:7]),
        )

    if " " in pulse:
        parts = pulse.split(" ")
        if len(parts) != _SPACE_PARTS:
            return None
        return _complete(owner=parts[1], rule=parts[2], scheduled=parts[0])

    if pulse.startswith(LEGACY_TIME_PREFIX):
        parts = pulse.split(":")
        if len(parts) != _COLON_PARTS:
            return None
        return _complete(
            owner=":".join(parts[3:6]),
            rule=parts[6],
            scheduled=":".join(parts[0:3]),
        )

    return None


def extract_coordinates(document: dict[str, Any]) -> dict[str, Any] | None:
    """stand ドキュメントから coordinates フィールドを生成する.

    Returns:
        書き込むフィールド（`{"coordinates": {...}}`）、pulse が未知の形式なら None
    """
    pulse = document.get("pulse")
    if not isinstance(pulse, str):
        return None
    coords = parse_pulse(pulse)
    if coords is None:
        return None
    return {"coordinates": coords.as_document()}
