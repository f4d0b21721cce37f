"""stand のタグ正規化・属性昇格・マージ.

- 正規化（文字列タグ → タグオブジェクト）
- 属性昇格（JSON文字列の data → attributes）
- マージ（同じ目的を持つラベルの組を1つのタグに畳み込む）

いずれも1ドキュメント分のタグ列を受け取り、新しいタグ列を返す純粋関数です。
入力のタグ列・タグ辞書は変更しません。
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

from loguru import logger

Tag = dict[str, Any]
MergeMode = Literal["intended", "literal"]

MERGE_MODES: tuple[str, ...] = ("intended", "literal")

DEFAULT_LEVEL = "INFO"
DEFAULT_MARKDOWN = ""
DEFAULT_DATA = "{}"


@dataclass(frozen=True)
class TagDefaults:
    """文字列タグをオブジェクト化するときの既定値."""

    level: str = DEFAULT_LEVEL
    markdown: str = DEFAULT_MARKDOWN
    data: str = DEFAULT_DATA


@dataclass(frozen=True)
class ParsedAttributes:
    """data 文字列のパース結果.

    成功時は attributes に辞書、失敗時は error に理由が入り attributes は空辞書になります。
    """

    attributes: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def tag_object(label: str, defaults: TagDefaults | None = None) -> Tag:
    """文字列タグからタグオブジェクトを作る.

    Examples:
        >>> tag_object("built")
        {'label': 'built', 'level': 'INFO', 'data': '{}', 'markdown': ''}
    """
    defaults = defaults or TagDefaults()
    return {
        "label": label,
        "level": defaults.level,
        "data": defaults.data,
        "markdown": defaults.markdown,
    }


def normalize_tags(tags: Sequence[Any], defaults: TagDefaults | None = None) -> list[Any]:
    """文字列タグをタグオブジェクトに変換する（順序維持）.

    既にオブジェクトのタグはそのまま（同一オブジェクトのまま）返します。

    Args:
        tags: 文字列とオブジェクトが混在し得るタグ列
        defaults: オブジェクト化するときの既定値

    Returns:
        新しいタグ列
    """
    return [tag_object(t, defaults) if isinstance(t, str) else t for t in tags]


def parse_attributes(text: str) -> ParsedAttributes:
    """data 文字列を attributes 辞書にパースする.

    JSON として不正、または JSON オブジェクト以外（配列・数値など）の場合は
    空辞書と error を返します。例外は送出しません。

    Examples:
        >>> parse_attributes('{"a": 1}').attributes
        {'a': 1}
        >>> parse_attributes("not-json").ok
        False
    """
    try:
        value = json.loads(text)
    except (TypeError, ValueError) as e:
        return ParsedAttributes(error=f"invalid JSON: {e}")

    if not isinstance(value, dict):
        return ParsedAttributes(error=f"expected JSON object, got {type(value).__name__}")

    return ParsedAttributes(attributes=value)


def promote_tag(tag: Tag) -> Tag:
    """1つのタグの data を attributes に昇格する.

    - data があればパースして attributes に入れ、data は結果にかかわらず削除する
    - attributes が配列（辞書以外）の場合は空辞書に置き換える
    - どちらにも当てはまらないタグは同一オブジェクトのまま返す
    """
    if "data" not in tag and isinstance(tag.get("attributes", {}), Mapping):
        return tag

    promoted = dict(tag)
    if "data" in promoted:
        data = promoted.pop("data")
        if isinstance(data, Mapping):
            promoted["attributes"] = dict(data)
        else:
            if isinstance(data, str):
                parsed = parse_attributes(data)
            else:
                parsed = ParsedAttributes(error=f"data is {type(data).__name__}, not a string")
            if not parsed.ok:
                logger.debug(f"Tag '{tag.get('label')}': {parsed.error}, using empty attributes")
            promoted["attributes"] = parsed.attributes

    attributes = promoted.get("attributes", {})
    if not isinstance(attributes, Mapping):
        logger.info(
            f"Tag '{tag.get('label')}': {type(attributes).__name__} attributes replaced with {{}}"
        )
        promoted["attributes"] = {}

    return promoted


def promote_attributes(tags: Sequence[Any]) -> list[Any]:
    """タグ列の全タグについて data → attributes の昇格を行う.

    オブジェクトでないタグ（未正規化の文字列タグ）はそのまま残します。
    """
    return [promote_tag(t) if isinstance(t, Mapping) else t for t in tags]


def _attributes_of(tag: Mapping[str, Any]) -> Mapping[str, Any]:
    attributes = tag.get("attributes")
    return attributes if isinstance(attributes, Mapping) else {}


def merge_tags(
    tags: Sequence[Tag],
    left: str,
    right: str,
    *,
    mode: MergeMode = "intended",
) -> list[Tag]:
    """ラベルの組 (left, right) に従ってタグをマージする.

    intended（既定）:
        タグ列に left ラベルのタグがあれば、right ラベルのタグを全て取り除き、
        その attributes を最初の left タグへ走査順に畳み込む（キー衝突は上書き）。
        left タグは元の位置に残る。left タグが無ければタグ列は変更しない。
        それ以外のラベルのタグはそのまま通す。

    literal:
        旧スクリプトの挙動をそのまま再現する。内側ループの比較が外側のタグを
        参照していたため畳み込みの分岐に到達せず、right ラベルのタグだけが残る。

    Args:
        tags: タグオブジェクトの列
        left: マージ先のラベル
        right: マージされる（取り除かれる）ラベル
        mode: "intended" または "literal"

    Returns:
        新しいタグ列

    Raises:
        ValueError: mode が不正な場合

    Examples:
        >>> merged = merge_tags(
        ...     [{"label": "on-commit", "attributes": {"x": 1}}, {"label": "ci", "attributes": {"y": 2}}],
        ...     "ci",
        ...     "on-commit",
        ... )
        >>> merged
        [{'label': 'ci', 'attributes': {'y': 2, 'x': 1}}]
    """
    if mode == "literal":
        return [t for t in tags if t.get("label") == right]
    if mode != "intended":
        raise ValueError(f"Unknown merge mode: {mode!r} (expected one of {MERGE_MODES})")

    target = next((t for t in tags if t.get("label") == left), None)
    if target is None or not any(t.get("label") == right for t in tags):
        return list(tags)

    attributes = dict(_attributes_of(target))
    merged: list[Tag] = []
    for tag in tags:
        if tag.get("label") == right:
            attributes.update(_attributes_of(tag))
            continue
        if tag is target:
            merged.append({**target, "attributes": attributes})
        else:
            merged.append(tag)

    return merged
