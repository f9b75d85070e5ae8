# ABOUTME: Holds the keyword tables used by the prompt scorer and content achievements.
# ABOUTME: Ships the Traditional Chinese defaults and loads replacement tables from YAML.

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Iterable, Tuple

import yaml


@dataclass(frozen=True)
class Vocabulary:
    """
    Keyword sets consulted by presence counting.

    Matching is case-insensitive substring presence, so a single table only
    serves one language at a time.
    """

    # clarity
    vague_words: Tuple[str, ...]
    concrete_nouns: Tuple[str, ...]
    sentence_terminators: Tuple[str, ...]
    # detail
    adjectives: Tuple[str, ...]
    colors: Tuple[str, ...]
    sizes: Tuple[str, ...]
    materials: Tuple[str, ...]
    # emotion
    emotion_words: Tuple[str, ...]
    action_verbs: Tuple[str, ...]
    sensory_words: Tuple[str, ...]
    # visual
    scenes: Tuple[str, ...]
    lighting: Tuple[str, ...]
    movements: Tuple[str, ...]
    composition: Tuple[str, ...]
    location_markers: Tuple[str, ...]
    # structure
    subjects: Tuple[str, ...]
    actions: Tuple[str, ...]
    settings: Tuple[str, ...]
    connectors: Tuple[str, ...]
    # content achievements
    creative_keywords: Tuple[str, ...]
    color_names: Tuple[str, ...]

    def count(self, table: str, text: str) -> int:
        """Number of distinct keywords of ``table`` present in ``text``."""
        haystack = text.lower()
        return sum(1 for word in getattr(self, table) if word.lower() in haystack)

    def matches(self, table: str, text: str) -> Tuple[str, ...]:
        haystack = text.lower()
        return tuple(word for word in getattr(self, table) if word.lower() in haystack)

    def has_any(self, table: str, text: str) -> bool:
        return self.count(table, text) > 0


DEFAULT_VOCABULARY = Vocabulary(
    vague_words=("東西", "什麼", "那個", "一些", "很多"),
    concrete_nouns=("小朋友", "房子", "花", "樹", "貓", "狗", "車", "書"),
    sentence_terminators=("。", "！", "？"),
    adjectives=("美麗", "可愛", "大", "小", "紅", "藍", "快樂", "溫暖"),
    colors=("紅", "藍", "綠", "黃", "紫", "橙", "白", "黑", "粉", "金"),
    sizes=("大", "小", "巨", "微", "高", "矮", "寬", "窄", "厚", "薄"),
    materials=("木", "金屬", "玻璃", "布", "石", "塑膠", "紙", "毛"),
    emotion_words=("開心", "快樂", "興奮", "溫馨", "驚喜", "神奇", "美麗", "可愛", "溫暖", "舒服"),
    action_verbs=("跳", "跑", "笑", "唱", "跳舞", "玩", "擁抱", "親吻", "微笑"),
    sensory_words=("香", "甜", "軟", "響", "亮", "暖", "涼", "順"),
    scenes=("公園", "花園", "房間", "廚房", "學校", "海邊", "山上", "森林"),
    lighting=("陽光", "月光", "燈光", "亮", "暗", "閃", "發光"),
    movements=("飄", "搖", "轉", "滾", "飛", "流", "動"),
    composition=("前面", "後面", "旁邊", "中間", "角落", "遠方", "近處"),
    location_markers=("在", "裡", "中", "上", "下", "旁邊"),
    subjects=("小朋友", "孩子", "男孩", "女孩", "媽媽", "爸爸", "老師", "動物"),
    actions=("跑", "跳", "玩", "笑", "唱", "畫", "吃", "睡", "讀"),
    settings=("公園", "家", "學校", "花園", "房間", "廚房"),
    connectors=("和", "然後", "接著", "同時", "在", "當"),
    creative_keywords=(
        "魔法", "彩虹", "閃亮", "夢幻", "神奇", "美麗", "奇幻", "童話",
        "仙境", "星星", "月亮", "太陽", "花朵", "蝴蝶", "天使", "精靈",
    ),
    color_names=(
        "紅色", "藍色", "綠色", "黃色", "紫色", "橙色", "粉色", "黑色", "白色",
        "金色", "銀色", "棕色", "灰色", "彩虹", "七彩", "五彩", "多彩",
    ),
)


def _as_words(name: str, value: object) -> Tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, Iterable):
        raise ValueError(f"Vocabulary table '{name}' must be a list of strings.")
    words = tuple(str(v) for v in value if str(v).strip())
    return words


def load_vocabulary(path: Path, base: Vocabulary = DEFAULT_VOCABULARY) -> Vocabulary:
    """
    Load keyword tables from a YAML mapping of table name to word list.

    Tables missing from the file fall back to ``base``; unknown table names
    are rejected so typos do not silently disable a rule.
    """

    with open(path, encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}

    tables = cfg.get("vocabulary", cfg)
    if not isinstance(tables, dict):
        raise ValueError(f"Vocabulary file {path} must contain a mapping of tables.")

    known = {f.name for f in fields(Vocabulary)}
    unknown = sorted(set(tables) - known)
    if unknown:
        raise ValueError(f"Unknown vocabulary tables in {path}: {', '.join(unknown)}")

    values = {name: getattr(base, name) for name in known}
    for name, words in tables.items():
        values[name] = _as_words(name, words)
    return Vocabulary(**values)
