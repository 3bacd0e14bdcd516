RESPONSE_SCHEMA = """{
  "qualityScore": 0-100 integer,
  "appointmentOutcome": "Booked" | "FollowUp" | "NoNextStep",
  "conversionLikelihood": "High" | "Medium" | "Low",
  "scriptAdherencePercent": 0-100 number,
  "scriptAdherenceSummary": "how closely the agent followed the call script, 1-3 sentences",
  "skills": {
    "discovery": 0-100,
    "objectionHandling": 0-100,
    "closing": 0-100,
    "rapport": 0-100
  },
  "coachingSummary": "one short paragraph of coaching suggestions",
  "appointmentRecommendation": "what the agent should do next with this prospect",
  "callTimeline": [
    {"label": "short title", "description": "what happened", "type": "opening" | "discovery" | "objection" | "close" | "other", "moment": "approximate point in the call, e.g. early, 02:15"}
  ],
  "keyObjections": ["objection raised by the prospect"],
  "strengths": ["something the agent did well"],
  "improvementAreas": ["something the agent should improve"],
  "coachingPlan": ["concrete practice step"],
  "recommendedPhrases": ["phrase the agent should use"],
  "phrasesToAvoid": ["phrase the agent should stop using"]
}"""

ANALYSIS_TEMPLATE = """You are a senior sales call coach for {company_context}.
You review sales calls made by agents and score them against the company's call script.

Use the call script, the manager's notes and the transcript to INFER:
- overall call quality score (0-100)
- whether an APPOINTMENT was successfully booked
- how likely the prospect is to convert
- how closely the agent followed the company's call script
- skill scores, a timeline of the call and concrete coaching

{script_block}

Agent name: {agent_name}
Call notes:
\"\"\"{notes}\"\"\"

Transcript:
<<<TRANSCRIPT
{transcript}
TRANSCRIPT>>>

Return ONLY valid JSON with this shape:

{schema}

Respond with the JSON object only: no explanation, no prose before or after it, no markdown code fences.
"""

NO_SCRIPT_BLOCK = "No company call script is configured. Judge script adherence against general appointment-setting best practice."

SCRIPT_BLOCK = """Company call script (the rubric to compare the call against):
<<<SCRIPT
{script}
SCRIPT>>>"""

DEFAULT_SCRIPT_CONTENT = """1. Opening: greet the prospect by name, introduce yourself and the company, and state the reason for the call in one sentence.
2. Permission: ask whether now is a good time for a two-minute conversation.
3. Discovery: ask at least two open questions about the prospect's current situation and what they would like to change.
4. Value: connect one benefit directly to a pain point the prospect mentioned.
5. Objections: acknowledge the concern, ask a clarifying question, then answer it.
6. Close: ask directly for an appointment and offer two specific time slots.
7. Recap: confirm the date, time, address and who will attend before ending the call."""
