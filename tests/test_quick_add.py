import random

import pytest

from LifeMap.timeline.quick_add import (
    CARD_DESCRIPTION_HINT,
    CARDS,
    MILESTONES,
    WRITING_GUIDES,
    MilestoneAnswer,
    drafts_from_cards,
    drafts_from_milestones,
    random_guide,
)


def test_card_catalogue():
    assert len(CARDS) == 20
    assert len({c.id for c in CARDS}) == 20


def test_drafts_from_cards_in_catalogue_order():
    drafts = drafts_from_cards(["c2", "c1"])
    assert [d.title for d in drafts] == ["여행 계획 주도", "진상 손님 대처"]
    first = drafts[0]
    assert first.description == f"친구들 사이에서 여행 계획 짰던 적 있어?\n\n{CARD_DESCRIPTION_HINT}"
    assert first.category == "대외활동"
    assert first.emotion == "즐거움"
    assert first.satisfaction == 5
    assert first.tags == ["card:c1"]


def test_unknown_card_id():
    with pytest.raises(KeyError):
        drafts_from_cards(["c1", "c99"])


def test_milestone_answers():
    drafts = drafts_from_milestones({
        "m1": MilestoneAnswer(title="", description="첫 월급으로 부모님 선물", date="2022.03.01"),
        "m2": MilestoneAnswer(title="재수", description=""),
        "m3": MilestoneAnswer(title="  ", description=" "),
    })
    assert len(drafts) == 2
    achievement, hardship = drafts
    assert achievement.title == f"{MILESTONES[0].title} 관련 경험"
    assert achievement.start_date == "2022.03.01"
    assert achievement.emotion == "성취"
    assert hardship.title == "재수"
    assert hardship.description == "내용 없음"
    assert hardship.start_date is None
    assert hardship.emotion == "두려움"


def test_random_guide():
    assert random_guide(random.Random(0)) in WRITING_GUIDES
