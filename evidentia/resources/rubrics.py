"""
보고서 합성 프롬프트에 포함되는 채점 기준표
"""

CONFIDENCE_RUBRIC = """
Confidence (0-100) is built from:
- Evidence quantity: more diverse evidence gives a higher base.
- Cross-modal consistency: no contradictions +20; minor contradictions +10; major contradictions -20.
- External verification: several supporting sources +15; disputed -15; none 0.
- Manipulation signals: none 0; low -10; high -25.
- Clamp the final score to 0-100.
"""

AI_GENERATION_RUBRIC = """
AI-generation likelihood (0-100):
- Count signals: compression artifacts, unnatural cadence, semantic inconsistencies, metadata anomalies, lip-sync cues, repetition patterns.
- Each strong signal +15 to +25. Each weak signal +5 to +10.
- No signals: 0-15 (baseline uncertainty).
- Cap at 100.
"""

SCAM_RISK_RUBRIC = """
Scam risk (0-100):
- Urgency language +15
- Request for money or credentials +25
- Impersonation of an authority or family member +20
- Too-good-to-be-true offer +15
- Poor grammar combined with urgency +10
- Known scam patterns (inheritance, lottery, tech support) +20
- Sum and cap at 100.
"""

BIAS_RUBRIC = """
Bias score (0-100):
- Loaded or emotional wording +10 per instance
- Only one-sided sources +25
- Missing counterpoints +15
- Persuasion tactics (bandwagon, appeal to authority) +10 each
- Explain in plain language and list the detected patterns.
"""

VERDICT_RUBRIC = """
Verdict is exactly one of: Likely True | Mixed/Unclear | Likely False | Manipulated/Deceptive
- Likely True: confidence >= 70, high consistency, no manipulation red flags.
- Mixed/Unclear: confidence 40-69 or conflicting evidence.
- Likely False: confidence < 40 or major contradictions.
- Manipulated/Deceptive: strong AI-generation or deepfake signals, or evidence of editing.
"""

REPORT_RUBRICS = "\n".join([
    CONFIDENCE_RUBRIC,
    AI_GENERATION_RUBRIC,
    SCAM_RISK_RUBRIC,
    BIAS_RUBRIC,
    VERDICT_RUBRIC,
])
