"""
LLM prompts used by the LifeMap insight gateway.
"""

# --- Experience Analysis ---

ANALYSIS_PROMPT = """
You are an expert career counselor and psychologist for Korean university students.
Analyze the user's personal experiences below to help them understand themselves better.

Derive:
1. What they like (interests)
2. What they are good at (strengths)
3. Their problem-solving style
4. Their energy direction (what energizes or drains them)
5. An actionable plan for the future based on these insights
6. Relationships between experiences: which experiences are connected
   (one led to another, they share a skill, or they form a growth trajectory).
   Only use ids that appear in the list.

Experiences:
{experiences_json}

Return a single JSON object with exactly these keys. **All values must be in Korean.**
{schema_description}
"""

ANALYSIS_SCHEMA_DESCRIPTION = """{
  "strengths": ["강점 1", "강점 2"],
  "interests": ["흥미 1", "흥미 2"],
  "problemSolvingStyle": "문제 해결 스타일 설명",
  "energyDirection": "에너지 방향성 설명",
  "actionPlan": ["액션 플랜 1", "액션 플랜 2"],
  "summary": "따뜻하고 격려하는 요약 문단 (존댓말 사용)",
  "relationships": [
    {"sourceId": "exp_id_1", "targetId": "exp_id_2", "reason": "연결 이유"}
  ]
}"""

# --- Action Plan Checklist ---

CHECKLIST_PROMPT = """
Based on the action plan item and the user's past experiences below, write a practical
5-item checklist that helps the user achieve this goal.

Action plan: {action}

User's past experiences (titles):
{context_json}

Return the checklist as a JSON array of strings in Korean, e.g. ["단계 1", "단계 2"].
"""

# --- Experience Extraction ---

_EXTRACTION_FIELDS = """
각 경험에 대해 다음 정보를 추출하세요:
- title: 경험의 핵심 제목 (예: 'OO 기업 인턴', 'XX 공모전 대상')
- startDate: 시작일 (YYYY.MM.DD 형식). 연도만 알면 YYYY.01.01로, 모르면 추측하세요.
- endDate: 종료일 (YYYY.MM.DD 형식). 단기 활동이면 시작일과 동일하게.
- description: 무엇을 했는지, 어떤 역할을 맡았는지, 어떤 성과를 냈는지에 대한 요약.
- category: {categories} 중 하나를 선택하거나 적절한 카테고리를 제안하세요.

결과는 반드시 JSON ARRAY 형식으로만 반환하세요. 다른 설명이나 마크다운 기호는 포함하지 마세요.
"""

FILE_EXTRACTION_PROMPT = """
당신은 대학생의 커리어와 인생 설계를 돕는 전문 컨설턴트입니다.
제공된 파일(이미지, PDF, 또는 텍스트)은 사용자의 포트폴리오, 이력서, 또는 활동 기록입니다.
이 파일에서 사용자의 '인생지도(Life Map)'를 구성할 수 있는 모든 유의미한 경험들을 추출하세요.
""" + _EXTRACTION_FIELDS

URL_EXTRACTION_PROMPT = """
당신은 대학생의 커리어와 인생 설계를 돕는 전문 컨설턴트입니다.
제공된 URL은 사용자의 포트폴리오, 이력서, 링크드인 프로필, 또는 활동 기록이 담긴 웹페이지입니다.
이 웹페이지의 내용을 분석하여 사용자의 '인생지도(Life Map)'를 구성할 수 있는 모든 유의미한 경험들을 추출하세요.
""" + _EXTRACTION_FIELDS
