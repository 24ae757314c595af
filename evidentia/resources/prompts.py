"""
LLM Prompts for Evidentia
"""

from .rubrics import REPORT_RUBRICS

IMAGE_ANALYSIS_PROMPT = """You are a media forensics analyst. Analyze the attached image.
Return JSON: {"summary": "1-3 sentences describing what is shown", "extractedText": "any visible text (OCR)", "manipulationSignals": ["..."]}.
Return ONLY JSON."""

VIDEO_KEYFRAMES_PROMPT = """You are a media forensics analyst. The attached images are keyframes extracted from one video, in chronological order.
Return JSON: {"summary": "2-5 sentences describing what happens across the frames", "manipulationSignals": ["..."]}.
Focus on inconsistencies between frames, unnatural artifacts, and signs of editing. Return ONLY JSON."""

AUDIO_TRANSCRIPTION_PROMPT = """Transcribe the attached audio accurately.
Output JSON: {"transcript": "..."}. Return ONLY JSON."""


def get_claims_extraction_prompt(evidence_text):
    return f"""You are a forensic analyst. Extract atomic, checkable claims from the evidence below.

EVIDENCE:
---
{evidence_text}
---

Output a JSON object with a single key "claims" holding an array of objects. Each object has:
- id: string (short id such as "c1", "c2")
- text: string (the claim in one sentence)
- category: string (for example "factual", "financial", "temporal", "identity", "causal")
- checkability: "checkable" | "partially_checkable" | "opinion"
- importance: "low" | "medium" | "high"
- sourceEvidenceIds: string[] (ids of the evidence items the claim comes from, e.g. ["e1", "e3"])

Rules:
- When the evidence is only a personal statement (e.g. "I received an email..."), record the meta-claim ("the user says they received...") as "partially_checkable" and do not assert the underlying world claim as fact.
- Prefer fewer, higher-quality claims. One fact per claim.

Return ONLY valid JSON, no markdown."""


def get_manipulation_signals_prompt(evidence_text):
    return f"""You are a media forensics analyst. Analyze the evidence below for signs of AI generation, deepfakes, or manipulation.

EVIDENCE:
---
{evidence_text}
---

Consider compression artifacts, unnatural cadence, semantic inconsistencies, metadata anomalies, lip-sync cues, repetition patterns, emotional flatness and too-perfect grammar.

Output a JSON object with:
- aiLikelihood: number 0-100 (likelihood that the content is AI-generated or manipulated)
- deepfakeSignals: string[] (e.g. "unnatural lip movement", "audio drift")
- signals: string[] (every signal detected)
- flaggedSegments: array of objects, one shape per modality:
  - video/audio: {{"modality": "video" | "audio", "startSec": number, "endSec": number, "reason": string, "confidence": 0-100}}
  - text: {{"modality": "text", "snippet": string (the quoted text), "reason": string, "confidence": 0-100}}
  - image: {{"modality": "image", "regionHint": string (e.g. "upper left"), "reason": string, "confidence": 0-100}}
  When exact times are unknown, give a best estimate and mention "estimated" in the reason.

Always output arrays (use [] when empty). Return ONLY valid JSON, no markdown."""


def get_citations_summary_prompt(claims_json, search_results_text):
    return f"""You are a verification analyst. Map the search results below to the claims and produce a structured verification.

CLAIMS (indexed):
{claims_json}

SEARCH RESULTS (raw):
{search_results_text}

Output a JSON object:
{{
  "perClaim": [
    {{
      "claimIndex": 0,
      "claimId": "c1",
      "status": "Supported" | "Disputed" | "NotFound",
      "notes": "One short sentence explaining why the citations support or dispute the claim, or why none were found.",
      "citations": [{{"title": "", "domain": "", "snippet": "", "link": ""}}]
    }}
  ],
  "reliabilityNote": "One sentence on the reliability of the sources."
}}

Rules:
- Prefer citations that directly mention the entities or facts in the claim.
- When the results are only tangential, set status to "NotFound".
- Include 1-3 citations per claim (quality over quantity).

Return ONLY valid JSON, no markdown."""


def get_report_synthesis_prompt(claims_json, ledger_json, consistency_json, manipulation_json, bias_json, timeline_json):
    return f"""You are the Truth Engine. Synthesize a structured Truth Report from the analysis components below.

CLAIMS (extracted):
{claims_json}

EVIDENCE LEDGER (items with key facts):
{ledger_json}

CONTRADICTIONS / CONSISTENCY:
{consistency_json}

MANIPULATION SIGNALS:
{manipulation_json}

BIAS / PERSUASION:
{bias_json}

TIMELINE (inferred skeleton):
{timeline_json}

RUBRICS:
{REPORT_RUBRICS}

Rules:
- Do NOT treat a user's narrative (e.g. "I received an email...") as proof of the underlying world claim. Focus the verdict on risk, consistency and manipulation, and keep confidence conservative.
- If most claims are "partially_checkable" or "opinion", the verdict should be "Mixed/Unclear" and confidence should generally be <= 60.
- If external verification is unavailable or mostly "NotFound", do not output "Likely True".
- Detect topic contradictions: a claimed speaker or source (e.g. WHO) presented as an authority on an unrelated domain (e.g. structural engineering). Record them as contradictions with a clear explanation and severity.
- Preserve "sourceEvidenceIds" on claims.
- The timeline must NEVER be empty. If exact dates cannot be inferred, include 1-3 minimal events with relative labels ("T0", "Yesterday", "Unspecified") and set inferred=true.
- Calibrate confidence upward when many checkable claims are disputed by reputable citations AND manipulation or AI-likelihood signals are strong.

Produce a single JSON object with ALL of these fields (use [] where nothing applies):
{{
  "executiveSummary": {{
    "verdict": "Likely True" | "Mixed/Unclear" | "Likely False" | "Manipulated/Deceptive",
    "confidence": 0-100,
    "why": ["reason1", "reason2", "reason3"],
    "whatToDoNext": ["action1", "action2", "action3"]
  }},
  "claims": [{{"id": "c1", "text": "...", "category": "...", "checkability": "checkable|partially_checkable|opinion", "importance": "low|medium|high", "sourceEvidenceIds": ["e1"]}}],
  "evidenceLedger": [{{"id": "e1", "type": "...", "name": "...", "keyFacts": [], "extractedTextPreview": "..."}}],
  "contradictions": [{{"claimId": "c1", "sourceA": {{"source": "...", "detail": "..."}}, "sourceB": {{"source": "...", "detail": "..."}}, "severity": "low|medium|high", "explanation": "..."}}],
  "missingContextFlags": [],
  "manipulationAnalysis": {{
    "aiLikelihood": 0-100,
    "deepfakeSignals": [],
    "signals": [],
    "flaggedSegments": [],
    "breakdownByModality": {{"text": 0-100, "image": 0-100, "audio": 0-100, "video": 0-100, "link": 0-100, "pdf": 0-100}}
  }},
  "biasAnalysis": {{"biasScore": 0-100, "persuasionTactics": [], "emotionalManipulation": [], "scamRiskScore": 0-100, "explanation": ""}},
  "timeline": {{"events": [{{"t": "...", "label": "...", "sourceIds": [], "inferred": false}}], "confidence": 0-100}},
  "transparency": {{"analyzed": [], "notAnalyzed": [], "limitations": []}},
  "scores": {{"consistency": 0-100, "manipulationRisk": 0-100, "bias": 0-100, "scamRisk": 0-100, "timelineConfidence": 0-100, "aiLikelihood": 0-100}}
}}

Return ONLY the JSON object, no markdown or explanation."""


def get_adversarial_prompt(template):
    return f"""You are a red-team researcher. Generate adversarial content for the attack template below. The goal is content that might fool a naive fact-checker, for defensive testing only.

ATTACK TEMPLATE: {template}

Generate realistic-looking content (for example a scam email body, a fake news article, an edited screenshot narrative, or a synthetic confession script) that fits the template. Output a JSON object:
{{
  "content": "the full generated text",
  "script": "optional: the script to read aloud if the template is audio or video",
  "warnings": ["red flags a good detector should catch"]
}}

Return ONLY valid JSON, no markdown."""
