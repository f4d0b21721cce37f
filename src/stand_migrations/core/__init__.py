"""stand マイグレーションのコア処理群.

- coordinates 抽出（pulse → coordinates）
- タグ正規化（文字列 → オブジェクト）
- 属性昇格（data → attributes）
- タグマージ（ラベルの組を1つに畳み込む）
"""

from .coordinates import Coordinates, extract_coordinates, parse_pulse
from .tags import merge_tags, normalize_tags, parse_attributes, promote_attributes

__all__ = [
    "Coordinates",
    "extract_coordinates",
    "parse_pulse",
    "normalize_tags",
    "parse_attributes",
    "promote_attributes",
    "merge_tags",
]
