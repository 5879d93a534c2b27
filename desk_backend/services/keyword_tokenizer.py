"""
검색 키워드 토큰화

자연어 질의에서 남은 키워드 문자열을 검색용 토큰 목록으로 변환한다.
- Kiwi 형태소 분석 (명사/외국어/용언 어간/숫자)
- 공백 분리 토큰 + 한글 복합어 접두어(2/3/4글자) 보강
- 3글자 이상 토큰이 있으면 2글자 토큰 제거, 길이 내림차순 정렬
"""

from __future__ import annotations

import re
from typing import Any, List, Optional

from desk_backend.repositories.morphology_utils import analyze_morphemes

# 검색 의미가 약한 단어 (키워드 오염 방지용)
NOISE_WORDS = [
    "관련", "파일", "자료", "내역", "주고받은", "주고 받은", "주고받기", "주고 받기",
    "건네받은", "건네 받은", "내가준", "내가 준",
    "사진", "이미지", "그림", "문서", "대화", "대화한", "얘기", "얘기한",
    "전송", "전송한", "전달", "전달한", "수신", "수신한",
    "채팅방", "단톡방", "단톡", "톡방", "나눈", "나눈거", "나눈파일", "공유", "공유한",
    # 자연어 꼬리말
    "관련한", "관련한거", "관련한것", r"관련한\s*건", "관련된", "관련된거", "관련된것", r"관련된\s*건",
    "관련해서", "관련해서는", "관련해서도",
    "한거", "한것", r"한\s*건", "했던거", "했던것", r"했던\s*건",
    "그거", "그것", r"그\s*건", "이거", "이것", r"이\s*건",
    "내용", "내용들", r"내용\s*정리", "정리", "정리한", "정리본", "요약", "요약본",
    "찾아", "찾아줘", "찾아주세요", "조회", "조회해", "조회해줘", "조회해주세요",
    "입니다", "이에요", "해줘", "해주세요", "좀",
]

# 긴 표현부터 매칭 ("관련한거"가 "관련"보다 먼저), 단독 "건"은 어절 단위로만 제거
KEYWORD_NOISE_PATTERN = re.compile(
    "|".join(sorted(set(NOISE_WORDS), key=len, reverse=True)) + r"|(?<!\S)건(?!\S)"
)

# "님이랑", "씨한테" 같은 호칭/조사 잔여물
HONORIFIC_PATTERN = re.compile(r"(님|씨)(이랑|랑|과|와|한테|에게)?")

_NON_WORD_PATTERN = re.compile(r"[^\w\s.\-]")
_HANGUL_PATTERN = re.compile(r"[가-힣ㄱ-ㅎㅏ-ㅣ]")

# 부서 접미어는 키워드로 쓰지 않음
_REJECTED_MORPHEMES = {"팀", "부서", "부"}


def contains_hangul(text: str) -> bool:
    return bool(text) and _HANGUL_PATTERN.search(text) is not None


def clean_keyword_text(text: str) -> str:
    """불용어/호칭 잔여물/특수문자 제거 후 공백 정리"""
    if not text:
        return ""
    t = KEYWORD_NOISE_PATTERN.sub(" ", text)
    t = HONORIFIC_PATTERN.sub(" ", t)
    t = _NON_WORD_PATTERN.sub(" ", t)
    return re.sub(r"\s+", " ", t).strip()


def _is_content_morpheme(form: str, tag: str) -> bool:
    if len(form) < 2 or form in _REJECTED_MORPHEMES:
        return False
    if tag in ("NNG", "NNP", "SL", "SN"):
        return True
    return tag.startswith("VA") or tag.startswith("VV")


class KeywordTokenizer:
    """키워드 문자열 → 검색 토큰 목록

    Args:
        tagger: 형태소 분석기 (None이면 전역 Kiwi 인스턴스)
        use_morphology: False이면 형태소 분석 없이 공백 분리 + 접두어 규칙만 사용
    """

    def __init__(self, tagger: Optional[Any] = None, use_morphology: bool = True) -> None:
        self.tagger = tagger
        self.use_morphology = use_morphology

    def tokenize(self, keyword: Optional[str]) -> List[str]:
        if keyword is None or not keyword.strip():
            return []

        cleaned = clean_keyword_text(keyword.strip())
        if not cleaned:
            return []

        # 입력 순서를 유지하는 중복 제거 집합
        tokens: dict = {}

        if self.use_morphology:
            for form, tag in analyze_morphemes(cleaned, self.tagger):
                if _is_content_morpheme(form, tag):
                    tokens.setdefault(form, None)

        for part in cleaned.split():
            if len(part) < 2:
                continue
            tokens.setdefault(part, None)
            if contains_hangul(part):
                # "귀여운짤" → "귀여운", "귀여" (복합어 부분 매칭)
                if len(part) >= 3:
                    tokens.setdefault(part[:3], None)
                    tokens.setdefault(part[:2], None)
                if len(part) >= 4:
                    tokens.setdefault(part[:4], None)

        result = [t for t in tokens if len(t) >= 2]
        if any(len(t) >= 3 for t in result):
            result = [t for t in result if len(t) > 2]

        # 긴 토큰 우선 (stable sort)
        result.sort(key=len, reverse=True)
        return result


def seed_tokens(tokens: List[str]) -> List[str]:
    """LIKE 검색 시드: 상위 3개 + (4개 이상이면) 가장 짧은 토큰"""
    if not tokens:
        return [""]
    seeds = list(tokens[:3])
    if len(tokens) > 3 and tokens[-1] not in seeds:
        seeds.append(tokens[-1])
    return seeds
