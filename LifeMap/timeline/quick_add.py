"""
Prompted ways of adding experiences: situation cards, the memory milestone
guide and the rotating writing tips shown on the entry form.
"""
from __future__ import annotations

import random
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel

from LifeMap.models import ExperienceDraft


class SituationCard(BaseModel):
    id: str
    question: str
    title: str
    category: str
    emotion: str


CARDS: List[SituationCard] = [
    SituationCard(id="c1", question="친구들 사이에서 여행 계획 짰던 적 있어?", title="여행 계획 주도", category="대외활동", emotion="즐거움"),
    SituationCard(id="c2", question="알바하다가 진상 손님 때문에 욱했는데 참은 적 있어?", title="진상 손님 대처", category="아르바이트", emotion="당황"),
    SituationCard(id="c3", question="밤새서 무언가에 몰입해 본 적 있어?", title="밤샘 몰입 경험", category="교내활동", emotion="즐거움"),
    SituationCard(id="c4", question="팀 프로젝트에서 아무도 안 하려는 역할 총대 멘 적 있어?", title="팀 프로젝트 총대", category="교내활동", emotion="도전"),
    SituationCard(id="c5", question="처음 해보는 일인데 맨땅에 헤딩해서 성공한 적 있어?", title="맨땅에 헤딩 성공", category="대외활동", emotion="성취"),
    SituationCard(id="c6", question="남들이 다 포기한 일, 끝까지 물고 늘어진 적 있어?", title="포기하지 않은 끈기", category="기타", emotion="성취"),
    SituationCard(id="c7", question="내 아이디어가 채택되어서 실제로 실행된 적 있어?", title="아이디어 실행", category="공모전", emotion="성취"),
    SituationCard(id="c8", question="취미로 시작한 일이 생각보다 커져서 성과를 얻은 적 있어?", title="취미의 확장", category="대외활동", emotion="즐거움"),
    SituationCard(id="c9", question="누군가를 진심으로 도와주고 큰 고마움을 받은 적 있어?", title="타인 도움 경험", category="기타", emotion="즐거움"),
    SituationCard(id="c10", question="발표나 무대 위에서 엄청 떨렸지만 무사히 마친 적 있어?", title="떨렸던 무대/발표", category="교내활동", emotion="성취"),
    SituationCard(id="c11", question="예상치 못한 큰 실수를 했지만, 어떻게든 수습한 적 있어?", title="큰 실수 수습", category="기타", emotion="당황"),
    SituationCard(id="c12", question="낯선 환경에 혼자 던져져서 적응한 적 있어?", title="낯선 환경 적응", category="대외활동", emotion="성취"),
    SituationCard(id="c13", question="리더가 되어 팀원들의 갈등을 중재해 본 적 있어?", title="팀 갈등 중재", category="교내활동", emotion="성취"),
    SituationCard(id="c14", question="평소라면 절대 안 할 법한 일에 충동적으로 도전해 본 적 있어?", title="충동적인 새로운 도전", category="기타", emotion="즐거움"),
    SituationCard(id="c15", question="오랫동안 준비한 시험이나 대회에서 원하던 결과를 얻은 적 있어?", title="장기 목표 달성", category="성적", emotion="성취"),
    SituationCard(id="c16", question="정말 열심히 했는데 처참하게 실패해 본 적 있어?", title="뼈아픈 실패 경험", category="기타", emotion="두려움"),
    SituationCard(id="c17", question="나만의 루틴이나 습관을 한 달 이상 꾸준히 유지해 본 적 있어?", title="꾸준한 루틴 유지", category="기타", emotion="성취"),
    SituationCard(id="c18", question="다른 사람을 설득해서 내 의견대로 이끌어 본 적 있어?", title="타인 설득 경험", category="교내활동", emotion="성취"),
    SituationCard(id="c19", question="돈을 모아서 평소 갖고 싶었던 큰 물건을 내 힘으로 사본 적 있어?", title="스스로 모은 돈으로 성취", category="아르바이트", emotion="성취"),
    SituationCard(id="c20", question="아무런 보상 없이 순수하게 좋아서 푹 빠졌던 활동이 있어?", title="순수한 몰입", category="기타", emotion="즐거움"),
]
CARDS_BY_ID: Dict[str, SituationCard] = {c.id: c for c in CARDS}

CARD_DESCRIPTION_HINT = "(이때의 상황과 나의 역할을 자세히 적어보세요!)"


def drafts_from_cards(card_ids: Iterable[str]) -> List[ExperienceDraft]:
    """One draft per selected card, in catalogue order. Unknown ids raise KeyError."""
    wanted = set(card_ids)
    unknown = wanted - CARDS_BY_ID.keys()
    if unknown:
        raise KeyError(f"Unknown card ids: {sorted(unknown)}")
    return [
        ExperienceDraft(
            title=card.title,
            description=f"{card.question}\n\n{CARD_DESCRIPTION_HINT}",
            category=card.category,
            emotion=card.emotion,
            satisfaction=5,
            tags=[f"card:{card.id}"],
        )
        for card in CARDS
        if card.id in wanted
    ]


class Milestone(BaseModel):
    id: str
    title: str
    question: str
    description: str
    icon: str
    default_category: str
    default_emotion: str


MILESTONES: List[Milestone] = [
    Milestone(
        id="m1", title="첫 성취의 순간", icon="🏆",
        question="내 힘으로 무언가를 이뤄내어 가장 뿌듯했던 순간은 언제인가요?",
        description="작은 목표라도 괜찮아요. 스스로 노력해서 얻어낸 결과물을 떠올려보세요.",
        default_category="기타", default_emotion="성취",
    ),
    Milestone(
        id="m2", title="시련과 극복", icon="🌧️",
        question="가장 힘들었거나 실패했던 경험, 그리고 그것을 어떻게 넘겼나요?",
        description="실패 자체보다, 그 이후에 내가 어떤 행동을 취했는지가 더 중요해요.",
        default_category="기타", default_emotion="두려움",
    ),
    Milestone(
        id="m3", title="소중한 인연과 협력", icon="🤝",
        question="나에게 큰 영향을 주었거나, 최고의 팀워크를 발휘했던 경험이 있나요?",
        description="누군가와 함께 문제를 해결했거나, 깊은 영감을 받았던 사람을 떠올려보세요.",
        default_category="대외활동", default_emotion="즐거움",
    ),
    Milestone(
        id="m4", title="결정적 터닝포인트", icon="💡",
        question="나의 생각이나 가치관, 진로가 크게 바뀌게 된 결정적인 사건이 있나요?",
        description="우연한 기회, 책 한 권, 혹은 누군가의 한 마디도 좋아요.",
        default_category="기타", default_emotion="당황",
    ),
    Milestone(
        id="m5", title="순수한 몰입", icon="🔥",
        question="시간 가는 줄 모르고, 누가 시키지 않아도 푹 빠져서 했던 활동은 무엇인가요?",
        description="나의 진짜 흥미와 열정이 어디로 향하는지 알 수 있는 중요한 단서입니다.",
        default_category="기타", default_emotion="즐거움",
    ),
]


class MilestoneAnswer(BaseModel):
    title: str = ""
    description: str = ""
    date: str = ""


def drafts_from_milestones(answers: Dict[str, MilestoneAnswer]) -> List[ExperienceDraft]:
    """Turn guide answers into drafts; milestones left blank are skipped."""
    drafts = []
    for milestone in MILESTONES:
        answer = answers.get(milestone.id)
        if answer is None or not (answer.title.strip() or answer.description.strip()):
            continue
        drafts.append(ExperienceDraft(
            title=answer.title.strip() or f"{milestone.title} 관련 경험",
            description=answer.description.strip() or "내용 없음",
            start_date=answer.date or None,
            end_date=answer.date or None,
            category=milestone.default_category,
            emotion=milestone.default_emotion,
            satisfaction=5,
            tags=[],
        ))
    return drafts


WRITING_GUIDES = [
    "💡 막막하다면, 가장 최근에 '즐거웠다'고 느낀 순간부터 적어보세요!",
    "💡 대학 입학 후 첫 방학 때 무엇을 했는지 떠올려보세요.",
    "💡 누군가에게 칭찬받았던 기억이 있나요?",
    "💡 밤새워도 피곤하지 않았던 활동이 있었나요?",
    "💡 정말 하기 싫었지만 억지로 해야 했던 일은 무엇인가요?",
]


def random_guide(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(WRITING_GUIDES)
