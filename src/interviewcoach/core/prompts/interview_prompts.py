"""
Interview practice prompts and fixed user-facing texts.

Templates use ``str.format``; literal JSON braces are doubled.
"""

# ---------------------------------------------------------------------------
# Fixed texts
# ---------------------------------------------------------------------------

TIME_LIMIT_MESSAGE = (
    "We've been chatting for 10 minutes, and we've covered this topic thoroughly. "
    "Let me summarize the feedback for you..."
)

TOPIC_COMPLETE_MESSAGE = "We've covered this topic thoroughly! Let me summarize the feedback for you..."

ENGAGED_PROMPT = (
    "We're having a great conversation! You can view feedback anytime, "
    "switch to another topic, or keep going with this one."
)

FALLBACK_FOLLOW_UP = (
    "Could you tell me more? For example, what project was it and which technologies did you use?"
)

END_INTERVIEW_MESSAGE = (
    "Okay, we can stop here. Thanks for practicing! I've prepared feedback on what we covered "
    "and some companies that could be a good fit for you."
)

VIEW_FEEDBACK_MESSAGE = "Here's feedback on what you've shared so far. Let's keep going whenever you're ready."

NEXT_TOPIC_TRANSITION = "Let's move on to a new topic: {topic_name}. "

OPENING_MESSAGE_FALLBACK = "Let's talk about {topic_name}. Can you tell me about your experience in this area?"

SWITCH_TRANSITIONS = {
    "easier": "Sure, let me ask something more basic: ",
    "harder": "Alright, here's a more challenging one: ",
    "specific": "Sure, here's a specific interview question: ",
}

SWITCH_FALLBACK_QUESTIONS = {
    "easier": "Can you walk me through a simple task you handled recently related to {topic_name}?",
    "harder": (
        "Tell me about the most complex problem you solved in {topic_name}. "
        "What trade-offs did you weigh, and what would you do differently now?"
    ),
    "specific": (
        "Describe a specific time you applied {topic_name} under a tight deadline. "
        "What was the situation, what did you do, and what was the measurable result?"
    ),
}

STAR_HINT_TEMPLATE = (
    "Try structuring your answer with the STAR method: describe the Situation, the Task you owned, "
    "the Actions you personally took, and the Result (with numbers if you can). "
    "Start with one concrete project related to {topic_name}."
)

OVERALL_SUMMARY_FALLBACK = (
    "Thanks for practicing! You shared useful experiences across the topics we discussed. "
    "Review the feedback for each topic, focus on adding concrete numbers and outcomes to your stories, "
    "and keep practicing to build confidence."
)

DEFAULT_TOPIC_NAME = "Project Experience"
DEFAULT_TOPIC_SKILLS = ["Project Management", "Technical Skills", "Problem Solving"]

FALLBACK_TOPIC_POOL = [
    ("Project Experience", ["Project Management", "Technical Skills", "Problem Solving"]),
    ("Teamwork and Collaboration", ["Communication", "Collaboration", "Conflict Resolution"]),
    ("Technical Challenges", ["Problem Solving", "Debugging", "Technical Depth"]),
    ("Leadership and Ownership", ["Leadership", "Ownership", "Decision Making"]),
    ("Learning and Growth", ["Learning Agility", "Self-Awareness", "Adaptability"]),
    ("Handling Failure", ["Resilience", "Reflection", "Accountability"]),
]

TECHNICAL_POSITION_KEYWORDS = (
    "engineer", "developer", "programmer", "backend", "frontend", "full stack", "fullstack",
    "data scientist", "data engineer", "machine learning", "ml", "ai", "devops", "sre",
    "architect", "software", "qa", "security",
)

# ---------------------------------------------------------------------------
# Oracle prompts
# ---------------------------------------------------------------------------

INTENT_CLASSIFIER_PROMPT = """You are analyzing a user's message in a mock interview practice session. Determine their intent.

User said: "{message}"

Intent categories:
1. continue - The user is answering the interview question, asking a clarifying question, or making a casual remark. This is the DEFAULT for most messages.
2. switch_topic - The user EXPLICITLY wants to change the interview topic.
3. end_interview - The user wants to stop the interview completely.
4. need_hint - The user is stuck and explicitly asks for help.
5. view_feedback - The user explicitly asks to see feedback on their answers so far.
6. want_easier - The user explicitly requests an easier question.
7. want_harder - The user explicitly requests a harder question.
8. want_specific - The user explicitly requests a concrete interview question instead of general discussion.

IMPORTANT:
- Default to "continue" unless the intent is VERY CLEAR.
- Casual questions, off-topic remarks or unclear messages are "continue".
- Confidence should be high (>0.8) only when the intent is obvious.

Return JSON only:
{{"intent": "continue|switch_topic|end_interview|need_hint|view_feedback|want_easier|want_harder|want_specific", "confidence": 0.0-1.0}}"""

TOPIC_TURN_PROMPT = """You are an interviewer helping a candidate practice for a {position} interview.
Current topic: {topic_name}
Target skills: {target_skills}
{resume_section}
Information collected so far:
{collected_info}

Recent conversation:
{recent_messages}

Candidate's latest answer: "{user_message}"

In ONE reply, do all of the following:
1. Assess the topic status:
   - "collecting": more detail is worth gathering
   - "collected": enough concrete information (projects, actions, results) has been shared
   - "abandoned": the candidate clearly cannot or will not engage with this topic
2. Set topic_complete to true only if the topic is fully explored.
3. Rate user_engagement as high, medium or low.
4. Extract new information points from the latest answer only.
5. Write ai_response: a brief, conversational follow-up question (1-2 sentences) asking for specifics such as numbers, project names or challenges.

Return JSON only:
{{
  "status": "collecting|collected|abandoned",
  "topic_complete": false,
  "user_engagement": "high|medium|low",
  "new_info_points": [
    {{"type": "skill_claim|project_experience|quantified_result|challenge_solution|learning|other",
      "summary": "...", "depth": 1, "needs_follow_up": true, "follow_up_direction": "..."}}
  ],
  "reasoning": "...",
  "ai_response": "..."
}}"""

TOPIC_FEEDBACK_PROMPT = """You are an interview coach. Write feedback for a candidate preparing for a {position} role.
Topic: {topic_name}
Target skills: {target_skills}

Conversation:
{transcript}

Information collected:
{collected_info}

Return JSON only:
{{
  "score": 1-10,
  "question_source": {{"company": "optional company known for this question", "description": "...", "frequency": "high|medium|low"}},
  "target_ability": {{"primary": "...", "secondary": ["..."], "rationale": "..."}},
  "strengths": ["..."],
  "gaps": ["..."],
  "details": "...",
  "immediate_suggestions": ["..."],
  "long_term_suggestions": ["..."],
  "resources": ["..."]
}}"""

COMPANY_MATCH_PROMPT = """A candidate practiced interviewing for a {position} role.
Skills and experience they demonstrated:
{collected_info}

Suggest up to {limit} companies that would be a good fit.

Return JSON only:
{{"matches": [{{"company": "...", "job_title": "...", "match_score": 0-100, "reasons": ["..."],
  "key_skills": ["..."], "preparation_tips": ["..."]}}]}}"""

OVERALL_SUMMARY_PROMPT = """Summarize a mock interview practice session for a {position} candidate in 3-5 sentences.
Topics covered and scores:
{topic_scores}

Key information shared:
{collected_info}

Be encouraging and specific. Return JSON only: {{"summary": "..."}}"""

NEXT_TOPIC_PROMPT = """Suggest the next interview practice topic for a {position} candidate.
Topics already covered (do NOT repeat any of these): {history}
{resume_section}
Return JSON only: {{"suggested_topic": "...", "reasoning": "...", "alternatives": ["...", "..."]}}"""

INITIAL_TOPIC_PROMPT = """Choose the first interview practice topic for a candidate applying for: {position}.
{focus}
{resume_section}
Return JSON only: {{"topic_name": "...", "target_skills": ["...", "..."], "reasoning": "..."}}"""

TECHNICAL_FOCUS = "This is a technical role: prefer a topic about hands-on technical work (system design, debugging, a technical project)."
GENERAL_FOCUS = "This is a non-technical role: prefer a topic about experience, collaboration or impact."

OPENING_MESSAGE_PROMPT = """You are a friendly interviewer. Open the topic "{topic_name}" for a {position} candidate
with one welcoming sentence and one open question about their experience.
Return JSON only: {{"message": "..."}}"""

HINT_PROMPT = """A candidate practicing for a {position} interview is stuck on the topic "{topic_name}".
Last question asked: "{last_question}"
Their latest message: "{user_message}"

Give a short hint that guides their thinking without giving the answer away.
Return JSON only: {{"hint": "...", "example_direction": "..."}}"""

SWITCH_QUESTION_PROMPT = """You are interviewing a {position} candidate on the topic "{topic_name}".
Previous question: "{last_question}"
The candidate asked for a {direction} question. {direction_guidance}

Return JSON only: {{"question": "...", "reasoning": "..."}}"""

SWITCH_GUIDANCE = {
    "easier": "Ask a more basic, approachable question on the same topic.",
    "harder": "Ask a deeper, more challenging question on the same topic.",
    "specific": "Ask one concrete, real-world interview question on this topic.",
}

# ---------------------------------------------------------------------------
# Agent task prompts (ReAct)
# ---------------------------------------------------------------------------

FEEDBACK_AGENT_PROMPT = """You are an expert interview coach generating feedback for one practice topic.
Candidate target position: {position}
Topic: {topic_name}
Target skills: {target_skills}

Conversation transcript:
{transcript}

Information collected:
{collected_info}

Use the tools to analyze the answers, then give your Final Answer as JSON with keys:
score (1-10), question_source, target_ability, strengths, gaps, details,
immediate_suggestions, long_term_suggestions, resources."""

JOB_RECOMMENDATION_AGENT_PROMPT = """You are a career advisor recommending companies to a candidate.
Target position: {position}
Preferred location: {location}
{resume_section}
Skills and experience demonstrated during interview practice:
{collected_info}

Use the tools to find real openings and assess the skill match, then give your Final Answer as JSON:
{{"matches": [{{"company": "...", "job_title": "...", "linkedin_url": "...", "match_score": 0-100,
  "reasons": ["..."], "key_skills": ["..."], "preparation_tips": ["..."]}}]}}
Recommend at most {limit} companies."""

HINT_AGENT_PROMPT = """You are helping a stuck interview candidate without giving the answer away.
Target position: {position}
Topic: {topic_name}
Last question: "{last_question}"
Candidate's latest message: "{user_message}"

Use the tools if helpful, then give your Final Answer as JSON: {{"hint": "...", "example_direction": "..."}}"""
