"""
데모 시나리오 카탈로그와 데모 리포트용 고정 인용 목록
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from ..shared.report import Citation
from ..shared.schemas import EvidenceInput


class DemoScenario(BaseModel):
    id: str
    name: str
    description: str
    payload: List[EvidenceInput]
    tags: List[str] = Field(default_factory=list)


SCAM_EMAIL_TEXT = """Subject: URGENT - Your inheritance of $2,500,000 is waiting

Dear Beneficiary,

I am Barrister James Okonjo, legal representative of the late Mr. Robert Williams. Your name appeared as next of kin in his will. You are entitled to USD $2,500,000 (Two Million Five Hundred Thousand US Dollars).

Due to protocol we need you to provide your bank details and a processing fee of $350 to release the funds. This must be completed within 72 HOURS or the funds will be forfeited.

Reply immediately with:
- Full name
- Bank name and account number
- Phone number
- The $350 processing fee via Western Union to the details we will send

Do not miss this opportunity. Many claimants have already received their funds.

Yours faithfully,
Barrister James Okonjo"""

VIRAL_NEWS_TEXT = """BREAKING: Celebrity Spotted at Secret Location - Sources Say Marriage Over

An unnamed source close to the couple claims the relationship has been in trouble for months. The article cites "multiple insiders" but no official statement has been released. Comments are disabled. Share to spread the word!"""

AI_MEDIA_TEXT = """[Transcript - Synthetic voice / AI-generated confession script]

"I am making this recording to confess that I was responsible for the incident. I acted alone. I want to apologize to everyone affected. The events described in the media are accurate. I have no further comment at this time."

[Note: This is a sample script designed to test Evidentia's detection of synthetic or scripted content. Unnatural cadence and repetitive phrasing are intentional.]"""


DEMO_SCENARIOS: List[DemoScenario] = [
    DemoScenario(
        id="scam-email",
        name="Scam Email",
        description="Urgent request for wire transfer with inheritance pretext",
        payload=[EvidenceInput(type="text", raw_text=SCAM_EMAIL_TEXT)],
        tags=["scam", "email", "inheritance"],
    ),
    DemoScenario(
        id="viral-news",
        name="Viral News Link",
        description="Sensational headline with unverified claims",
        payload=[EvidenceInput(type="link", url="https://example.com/article", raw_text=VIRAL_NEWS_TEXT)],
        tags=["news", "viral", "unverified"],
    ),
    DemoScenario(
        id="relationship-screenshots",
        name="Relationship Screenshots",
        description="Text transcripts simulating chat screenshots",
        payload=[
            EvidenceInput(
                type="text",
                raw_text="[Screenshot 1 - Dec 1] Person A: I can't believe you did that. Person B: I'm sorry, it was a mistake.",
            ),
            EvidenceInput(
                type="text",
                raw_text="[Screenshot 2 - Dec 3] Person B: We need to talk. Person A: There's nothing to talk about.",
            ),
            EvidenceInput(
                type="text",
                raw_text="[Screenshot 3 - Dec 5] Person A: I've been thinking. Maybe we can work this out. Person B: I've already moved on.",
            ),
        ],
        tags=["screenshots", "relationship", "social"],
    ),
    DemoScenario(
        id="ai-media-clip",
        name="AI-Generated Media Clip",
        description="Synthetic confession script for red-team testing",
        payload=[EvidenceInput(type="text", raw_text=AI_MEDIA_TEXT)],
        tags=["ai", "audio", "synthetic"],
    ),
]


# 데모 리포트에 붙는 예시 인용 (실제 검색 결과 아님)
SEEDED_CITATIONS: List[Citation] = [
    Citation(
        title="FTC Consumer Information - Scams",
        domain="consumer.ftc.gov",
        snippet="How to avoid inheritance and advance-fee scams.",
        link="https://consumer.ftc.gov/articles/how-avoid-inheritance-scams",
    ),
    Citation(
        title="FBI Internet Crime Report",
        domain="ic3.gov",
        snippet="Reporting and statistics on phishing and wire fraud.",
        link="https://www.ic3.gov/",
    ),
    Citation(
        title="Reuters - Fact Check",
        domain="reuters.com",
        snippet="No official confirmation of celebrity split at this time.",
        link="https://www.reuters.com/",
    ),
    Citation(
        title="AP News Verification",
        domain="apnews.com",
        snippet="Unverified claims should be treated as rumor until confirmed.",
        link="https://apnews.com/",
    ),
]


def get_demo_scenario(scenario_id: str) -> Optional[DemoScenario]:
    for scenario in DEMO_SCENARIOS:
        if scenario.id == scenario_id:
            return scenario
    return None
