"""
텍스트 유사도 계산

- 정규화: 공백 제거, 소문자, ㅐ→ㅔ / ㅒ→ㅖ (오타/발음 혼동 보정)
- 포함 관계: 0.8 + 0.2 × (짧은 길이 / 긴 길이)
- 그 외: 1 - 편집거리 / 긴 길이 (rapidfuzz Levenshtein)
"""

from __future__ import annotations

import re
from typing import Optional

from rapidfuzz.distance import Levenshtein

from desk_backend.repositories.hits import Hit

_HANGUL_BASE = 0xAC00
_HANGUL_LAST = 0xD7A3
_JUNG_COUNT = 21
_JONG_COUNT = 28
# 중성 인덱스: ㅐ=1 → ㅔ=5, ㅒ=3 → ㅖ=7
_VOWEL_FOLD = {1: 5, 3: 7}
_COMPAT_FOLD = str.maketrans({"ㅐ": "ㅔ", "ㅒ": "ㅖ"})

_WHITESPACE = re.compile(r"\s+")


def _fold_syllable(ch: str) -> str:
    code = ord(ch)
    if code < _HANGUL_BASE or code > _HANGUL_LAST:
        return ch
    offset = code - _HANGUL_BASE
    cho, rest = divmod(offset, _JUNG_COUNT * _JONG_COUNT)
    jung, jong = divmod(rest, _JONG_COUNT)
    if jung not in _VOWEL_FOLD:
        return ch
    return chr(_HANGUL_BASE + (cho * _JUNG_COUNT + _VOWEL_FOLD[jung]) * _JONG_COUNT + jong)


def normalize(text: Optional[str]) -> str:
    if text is None:
        return ""
    t = _WHITESPACE.sub("", text).lower().translate(_COMPAT_FOLD)
    return "".join(_fold_syllable(ch) for ch in t)


def calculate_similarity(a: Optional[str], b: Optional[str]) -> float:
    """두 문자열 유사도 (0.0 ~ 1.0), 예: ("배너디자인", "배너") → 0.88"""
    if a is None or b is None:
        return 0.0

    na, nb = normalize(a), normalize(b)
    if not na or not nb:
        return 1.0 if not na and not nb else 0.0
    if na == nb:
        return 1.0

    shorter, longer = (na, nb) if len(na) <= len(nb) else (nb, na)
    if shorter in longer:
        return 0.8 + 0.2 * (len(shorter) / len(longer))

    distance = Levenshtein.distance(na, nb)
    return 1.0 - distance / len(longer)


def score_hit(hit: Hit, query: str) -> float:
    """첨부파일 후보의 최대 유사도 (파일명/제목/본문 등 facet 중 최고점)"""
    best = 0.0
    for facet in hit.score_facets():
        if facet is None:
            continue
        best = max(best, calculate_similarity(facet, query))
    return best
