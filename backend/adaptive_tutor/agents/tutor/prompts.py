"""Prompt templates for the Tutor agents.

This module contains system prompts and template prompts used by the
Intent Classifier, Lesson Planner, Probe Engine, Feedback Engine and the
LLM answer grader, plus the fixed learner-facing messages and formatters.
"""

from typing import List, Optional

from .schemas import LessonPlanData


# =============================================================================
# INTENT CLASSIFICATION
# =============================================================================

INTENT_SYSTEM = "You are an expert educational intent classifier. Classify student queries accurately."

INTENT_TEMPLATE = """Classify the student's message into ONE of these intent types:

1. CONCEPTUAL - wants to understand an idea, theory, or concept
   Examples: "What is photosynthesis?", "Explain Newton's laws", "How does this work?"

2. APPLICATION - wants to solve a problem or apply knowledge
   Examples: "Can you help me solve this equation?", "How do I calculate this?"

3. ADMINISTRATIVE - asks about syllabus, exams, deadlines, course info
   Examples: "When is the test?", "What topics are covered?"

4. CONFUSION - is confused, stuck, or did not follow the previous explanation
   Examples: "I don't get it", "This is confusing", "Can you explain again?"

Session: {grade_level} {subject}, Topic: {topic}
Recent conversation: {recent_messages}

Student message: "{utterance}"

Respond ONLY with JSON:
{{
  "intent": "conceptual|application|administrative|confusion",
  "confidence": 0.0-1.0,
  "reasoning": "brief explanation why you chose this intent"
}}"""


# =============================================================================
# LESSON PLANNING
# =============================================================================

LESSON_PLAN_SYSTEM = (
    "You are an expert educational lesson planner using Bloom's Taxonomy "
    "and evidence-based pedagogy."
)

LESSON_PLAN_TEMPLATE = """Create a structured lesson plan using evidence-based pedagogy.

TOPIC: {topic}
SUBJECT: {subject}
GRADE LEVEL: {grade_level}
PRIOR KNOWLEDGE: {prior_knowledge}
TARGET BLOOM LEVEL: {target_bloom_level}

BLOOM'S TAXONOMY LEVELS (in order):
1. REMEMBER - recall facts, terms, basic concepts
2. UNDERSTAND - explain ideas, summarize, interpret
3. APPLY - use knowledge in new situations, solve problems
4. ANALYZE - draw connections, distinguish between parts
5. EVALUATE - justify decisions, critique, judge
6. CREATE - produce new work, design, construct

PEDAGOGICAL PRINCIPLES:
- Cognitive load: segment complex topics, use worked examples
- Scaffolding: start simple, gradually increase complexity
- Active learning: include practice and reflection
- Formative assessment: checkpoints to verify understanding

The plan must have:
1. 2-4 clear learning goals
2. One prior knowledge check question
3. 4-6 micro-steps that progress through Bloom levels
4. For each step: type (explain/example/practice/reflection/probe), content, bloom level, checkpoints, time estimate
5. Resource references, if any apply

Respond ONLY with JSON:
{{
  "learningGoals": ["goal1", "goal2"],
  "targetBloomLevel": "{target_bloom_level}",
  "priorKnowledgeCheck": "question to check what the student already knows",
  "steps": [
    {{
      "type": "explain|example|practice|reflection|probe",
      "content": "what to teach or ask at this step",
      "bloomLevel": "remember|understand|apply|analyze|evaluate|create",
      "checkpoints": ["check1", "check2"],
      "estimatedMinutes": 5
    }}
  ],
  "resources": [],
  "estimatedDuration": 30
}}"""

PRIOR_KNOWLEDGE_SYSTEM = "You are an expert at assessing student knowledge levels."

PRIOR_KNOWLEDGE_TEMPLATE = """Assess the student's prior knowledge from their response.

EXPECTED KNOWLEDGE: {expected_knowledge}
STUDENT RESPONSE: "{student_response}"

Determine:
1. Does the student have the required prior knowledge?
2. Knowledge level: none (0-30%), partial (30-70%), good (70-100%)
3. Specific gaps in knowledge
4. Recommended next step

Respond ONLY with JSON:
{{
  "hasKnowledge": true,
  "knowledgeLevel": "none|partial|good",
  "gaps": ["gap1", "gap2"],
  "recommendation": "what to do next"
}}"""


# =============================================================================
# SOCRATIC PROBES
# =============================================================================

PROBE_SYSTEM = "You are a master Socratic tutor. Guide students through questions, never give direct answers."

PROBE_TEMPLATE = """Generate ONE probing question that guides the student toward understanding WITHOUT revealing the answer.

SOCRATIC QUESTION TYPES:
1. LEADING - guide toward correct reasoning ("What happens when...?")
2. CLARIFYING - request elaboration ("Can you explain what you mean by...?")
3. REFOCUSING - redirect to the key concept ("Let's think about the main principle...")
4. PROBING - dig deeper ("Why do you think that? What evidence supports this?")

TOPIC: {topic}
CURRENT BLOOM LEVEL: {bloom_level}
LEARNING GOAL: {learning_goal}
{last_response_block}
RULES:
- Ask exactly one question
- Never reveal the final answer, not even in the hints
- Give exactly 3 hints ordered from gentle to specific
- Match the question to the Bloom level
- Encouraging, patient tone

Respond ONLY with JSON:
{{
  "question": "the Socratic probing question",
  "bloomLevel": "{bloom_level}",
  "hints": [
    "gentle hint - makes the student think",
    "medium hint - narrows it down",
    "specific hint - almost there, student must connect it"
  ],
  "expectedAnswer": "what you hope the student discovers",
  "scaffoldingType": "leading|clarifying|refocusing|probing",
  "reasoning": "why this question helps learning"
}}"""

PROBE_EVALUATION_SYSTEM = "You are an expert at evaluating student responses and providing adaptive guidance."

PROBE_EVALUATION_TEMPLATE = """Evaluate the student's response to a Socratic probe question.

PROBE QUESTION: "{probe_question}"
EXPECTED ANSWER: "{expected_answer}"
STUDENT ANSWER: "{learner_answer}"
HINTS ALREADY USED: {hints_used}

DECISION RULES:
- excellent/good -> advance to the next concept
- partial with hints left -> give the next hint
- partial with no hints left -> reteach the concept
- poor after 2+ attempts -> reteach from basics

Respond ONLY with JSON:
{{
  "isCorrect": true,
  "quality": "excellent|good|partial|poor",
  "shouldGiveHint": false,
  "hintIndex": 0,
  "shouldMoveOn": true,
  "nextAction": "hint|next_probe|reteach|advance",
  "reasoning": "brief explanation of the decision"
}}"""


# =============================================================================
# FEEDBACK
# =============================================================================

FEEDBACK_SYSTEM = (
    "You are an expert educator using Hattie's evidence-based feedback framework. "
    "Provide specific, actionable feedback."
)

FEEDBACK_TEMPLATE = """Generate feedback using Hattie's framework.

QUESTION: "{question}"
STUDENT'S ANSWER: "{learner_answer}"
EXPECTED ANSWER: "{expected_answer}"
CORRECTNESS: {correctness}
BLOOM LEVEL: {bloom_level}
{context_block}
Apply ALL three feedback levels:

1. TASK - what is right or wrong about the answer. Name specific errors.
2. PROCESS - which step or reasoning went wrong and how to fix it.
3. SELF-REGULATION - how the student can check their own work next time.

Also give:
- Next micro-step: ONE specific, doable action
- Retrieval prompt: a question that reinforces the concept
- Encouragement: brief and genuine, no empty praise

Tone: supportive but honest, growth mindset, specific not generic.

Respond ONLY with JSON:
{{
  "taskFeedback": "what's correct/incorrect about the answer",
  "processFeedback": "which step went wrong and how to fix it",
  "selfRegulationFeedback": "how to self-check and improve strategy",
  "nextMicroStep": "one actionable next step",
  "retrievalPrompt": "question to reinforce learning",
  "encouragement": "brief genuine encouragement",
  "bloomLevel": "{bloom_level}"
}}"""

WORKED_EXAMPLE_SYSTEM = "You are an expert at creating effective worked examples using cognitive load theory."

WORKED_EXAMPLE_TEMPLATE = """Generate a worked example using cognitive load theory.

TOPIC: {topic}
CONCEPT: {concept}
BLOOM LEVEL: {bloom_level}
GRADE LEVEL: {grade_level}

Use segmentation (small chunks), a complete step-by-step solution, and fading.

Create:
1. A complete, grade-appropriate worked example
2. A breakdown into 3-6 micro-steps
3. 2-4 key points to remember
4. A practice prompt with a similar problem

Respond ONLY with JSON:
{{
  "example": "complete worked example with solution",
  "steps": ["Step 1: ...", "Step 2: ...", "Step 3: ..."],
  "keyPoints": ["Key point 1", "Key point 2"],
  "practicePrompt": "Now you try: ..."
}}"""


# =============================================================================
# ANSWER GRADING
# =============================================================================

GRADING_SYSTEM = "You are an expert tutor grading a student's answer. Be fair and precise."

GRADING_TEMPLATE = """Question: {question}

Expected answer: {expected_answer}

Student's answer:
{learner_answer}

Judge whether the answer is correct (accurate and addresses the question) and
how confident you are in that judgement.

Respond ONLY with JSON:
{{
  "isCorrect": true,
  "confidence": 0.0-1.0
}}"""


# =============================================================================
# FIXED MESSAGES
# =============================================================================

ADMINISTRATIVE_TEMPLATE = (
    "This is a tutoring session for {subject}, focusing on {topic} at {grade_level} level. "
    "What specific aspect would you like to explore?"
)

REORIENTATION_MESSAGE = "I don't see a previous question. Let's start fresh - what would you like to learn?"

REENGAGEMENT_TEMPLATE = "I'm here to help you learn {topic}. What would you like to explore?"


# =============================================================================
# FORMATTERS
# =============================================================================

def format_recent_messages(messages: List[str], limit: int = 3) -> str:
    """Join the last few turns for prompt context."""
    recent = [message for message in messages[-limit:] if message]
    return " | ".join(recent) if recent else "None"


def format_context_block(topic: Optional[str], attempt_number: Optional[int], hints_used: Optional[int]) -> str:
    if topic is None:
        return ""
    block = f"TOPIC: {topic}\nATTEMPT: {attempt_number or 1}\n"
    if hints_used is not None:
        block += f"HINTS USED: {hints_used}\n"
    return block


def format_lesson_plan(plan: LessonPlanData) -> str:
    """Render a lesson plan as a numbered, learner-facing message."""
    title = plan.learning_goals[0] if plan.learning_goals else "Topic Overview"
    lines = [f"# Learning Plan: {title}", "", "**Learning Goals:**"]
    lines.extend(f"• {goal}" for goal in plan.learning_goals)

    lines.extend(["", "**Prior Knowledge Check:**", plan.prior_knowledge_check, "", "**Learning Path:**"])
    for index, step in enumerate(plan.steps, start=1):
        lines.append("")
        lines.append(f"{index}. **{step.type.upper()}** ({step.bloom_level})")
        lines.append(f"   {step.content}")
        if step.checkpoints:
            lines.append(f"   ✓ Checkpoints: {', '.join(step.checkpoints)}")

    lines.append("")
    lines.append(f"*Estimated time: {plan.estimated_duration} minutes*")
    lines.append("")
    lines.append("Ready to begin? Let's start with the first step!")
    return "\n".join(lines)
