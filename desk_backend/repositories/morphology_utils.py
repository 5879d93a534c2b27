"""
형태소 분석 유틸리티 모듈
검색 질의 키워드 추출에 사용하는 Kiwi 형태소 분석기 관리
"""
import threading
from typing import Any, List, Optional, Tuple

from kiwipiepy import Kiwi

# 전역 형태소 분석기 인스턴스 (캐싱)
_kiwi_tagger: Optional[Any] = None
_kiwi_init_failed = False
_init_lock = threading.Lock()
# Kiwi 분석 호출 직렬화 (프로세스 단위)
_analyze_lock = threading.Lock()

# 사용자 사전에 추가할 업무/파일 관련 단어
USER_DICTIONARY = [
    ("기획서", "NNG"),
    ("신제품", "NNG"),
    ("시안", "NNG"),
    ("배너", "NNG"),
    ("견적서", "NNG"),
    ("회의록", "NNG"),
    ("보고서", "NNG"),
    ("제안서", "NNG"),
    ("짤", "NNG"),  # 신조어
    ("썸네일", "NNG"),
    ("와이어프레임", "NNG"),
    ("UI", "SL"),
    ("UX", "SL"),
]


def get_morphology_tagger() -> Optional[Any]:
    """형태소 분석기 인스턴스 반환 (싱글톤, 초기화 실패 시 None)"""
    global _kiwi_tagger, _kiwi_init_failed

    if _kiwi_tagger is not None or _kiwi_init_failed:
        return _kiwi_tagger

    with _init_lock:
        if _kiwi_tagger is not None or _kiwi_init_failed:
            return _kiwi_tagger
        try:
            tagger = Kiwi()
            for word, pos in USER_DICTIONARY:
                try:
                    tagger.add_user_word(word, pos)
                except Exception:
                    pass  # 이미 추가되었거나 실패해도 계속 진행
            _kiwi_tagger = tagger
            print("✅ Kiwi 형태소 분석기 초기화 완료")
        except Exception as e:
            print(f"⚠️ 형태소 분석기 초기화 실패: {e}")
            _kiwi_init_failed = True

    return _kiwi_tagger


def analyze_morphemes(text: str, tagger: Optional[Any] = None) -> List[Tuple[str, str]]:
    """(형태소, 품사) 목록 반환. 분석기가 없거나 분석에 실패하면 빈 목록

    Args:
        text: 분석할 문자열 (예: "배너디자인 시안")
        tagger: 사용할 분석기 (None이면 전역 Kiwi 인스턴스)

    Returns:
        [("배너", "NNG"), ("디자인", "NNG"), ("시안", "NNG")]
    """
    if not text or not text.strip():
        return []

    if tagger is None:
        tagger = get_morphology_tagger()
    if tagger is None:
        return []

    try:
        with _analyze_lock:
            tokens = tagger.tokenize(text)
        return [(_surface_or_form(text, token), token.tag) for token in tokens]
    except Exception as e:
        print(f"⚠️ 형태소 분석 실패: {e}")
        return []


def _surface_or_form(text: str, token: Any) -> str:
    """불규칙 활용(VV-I, VA-I)은 복원된 원형 대신 입력에 나온 표면형 사용 (예: 아름답 → 아름다운)"""
    if not token.tag.endswith("-I"):
        return token.form
    start = getattr(token, "start", None)
    length = getattr(token, "len", None)
    if start is None or not length:
        return token.form
    return text[start:start + length] or token.form
