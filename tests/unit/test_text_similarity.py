"""Unit tests for text similarity and per-hit scoring."""

from datetime import datetime

import pytest

from desk_backend.repositories.hits import ChatHit, TicketHit
from desk_backend.services.text_similarity import calculate_similarity, normalize, score_hit


def test_identical_strings_score_one():
    assert calculate_similarity("신제품 기획서", "신제품 기획서") == 1.0


@pytest.mark.parametrize(
    "a,b",
    [("배너디자인", "배너"), ("회의록", "회의자료"), ("report", "repot"), ("UI 가이드", "ux가이드")],
)
def test_similarity_is_symmetric(a, b):
    assert calculate_similarity(a, b) == calculate_similarity(b, a)


def test_containment_scores_at_least_point_eight():
    assert calculate_similarity("배너디자인_시안.png", "배너디자인") >= 0.8
    assert calculate_similarity("배너", "배너디자인") == pytest.approx(0.8 + 0.2 * 2 / 5)


def test_levenshtein_ratio_when_not_contained():
    assert calculate_similarity("abcd", "abce") == pytest.approx(0.75)


def test_whitespace_and_case_are_ignored():
    assert calculate_similarity("배너 디자인", "배너디자인") == 1.0
    assert calculate_similarity("PDF", "pdf") == 1.0


def test_vowel_folding_for_common_confusions():
    # ㅐ/ㅔ, ㅒ/ㅖ 혼동
    assert calculate_similarity("개발", "게발") == 1.0
    assert calculate_similarity("얘기", "예기") == 1.0
    assert normalize("ㅐㅒ") == "ㅔㅖ"


def test_empty_and_none_inputs():
    assert calculate_similarity("", "  ") == 1.0
    assert calculate_similarity("", "파일") == 0.0
    assert calculate_similarity(None, "파일") == 0.0


def test_score_hit_takes_best_ticket_facet():
    hit = TicketHit(
        uuid="t1", file_name="draft.pdf", file_size=1, created_at=datetime(2025, 3, 1),
        uploader="a@desk.com", receiver=None, uploader_nickname="가", uploader_department=None,
        tno=1, title="신제품 기획서", content="본문", purpose=None, requirement="요구사항",
    )
    assert score_hit(hit, "신제품 기획서") == 1.0
    assert score_hit(hit, "전혀다른질의문장") < 0.7


def test_score_hit_uses_room_name_and_uploader_nickname_for_chat():
    hit = ChatHit(
        uuid="c1", file_name="a.png", file_size=1, created_at=None,
        uploader="a@desk.com", receiver=None, uploader_nickname="안은지", uploader_department=None,
        chat_room_id=1, room_name="신제품 TF",
    )
    assert score_hit(hit, "안은지") == 1.0
    assert score_hit(hit, "신제품") >= 0.8
