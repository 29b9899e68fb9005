"""Prompt builders.

Pure functions: structured parameters in, instruction string out. Prompts that
expect structured output spell out the JSON shape the caller will parse.
"""

import json
from typing import Dict, Optional, Sequence

from tutor_core.domain.models import StudentProfile


ONBOARDING_QUESTIONS = (
    "What grade are you in? (This helps me adjust the difficulty)",
    "What subjects are you most interested in learning about?",
    "How do you learn best? (visual, hands-on, reading, discussing, etc.)",
    "What's your biggest challenge with studying?",
    "What would make learning more fun for you?",
)


def question_prompt(
    grade: int,
    topic: str,
    difficulty: str = "medium",
    subject: str = "Math",
    goal: str = "SAT",
    question_count: int = 1,
) -> str:
    style = "SAT-style " if goal == "SAT" else ""
    return f"""You are a professional academic question writer specializing in standardized test preparation.
Create {question_count} original multiple-choice {style}questions in {subject}.
Each question should assess understanding of: "{topic}".
Grade level: {grade}.
Difficulty: {difficulty}.

### Output Format (strict JSON ONLY - no other text):
{{
  "questions": [
    {{
      "id": "unique_id_or_null",
      "topic": "{topic}",
      "difficulty": "{difficulty}",
      "subject": "{subject}",
      "question": "Question text here",
      "choices": ["3", "4", "5", "6"],
      "answer": "3",
      "explanation": "Step-by-step reasoning and why this is the correct choice.",
      "source": "generated"
    }}
  ]
}}

### CRITICAL REQUIREMENTS:
- The "answer" field MUST be EXACTLY one of the values from the "choices" array (exact match, character-for-character).
- Do NOT include "A)", "B)", "C)", "D)" prefixes in choices or answer. Use plain values only.
- For math questions, calculate the correct answer FIRST, then create 3 realistic wrong answers as distractors.
- Do NOT copy any copyrighted or official exam material.
- Make distractor choices realistic and plausible (common mistakes, calculation errors, or partially correct answers).
- Ensure math expressions are clear (use plain text, e.g., "x^2" for x squared).
- Always provide an explanation that teaches the concept and explains why the other choices are wrong.
- Output must be valid JSON only (no text outside JSON, no markdown code blocks).
- Start your response with the opening brace {{ and end with the closing brace }}.
- Ensure all special characters are properly escaped in JSON (backslashes, quotes).
- Include context in reading questions (short passages when appropriate).
- For writing questions, include sentences with grammatical errors to identify and correct.
"""


def study_plan_prompt(
    student_name: str,
    grade: int,
    goals: Sequence[str],
    baseline_scores: Optional[Dict[str, int]],
    weekly_hours: int,
    target_date: Optional[str],
    learning_style: str,
) -> str:
    kind = "SAT preparation" if "SAT" in goals else "academic"
    baseline = f"- Baseline Scores: {json.dumps(baseline_scores)}\n" if baseline_scores else ""
    return f"""You are an expert academic planner and SAT coach. Your job is to design a personalized {kind} study plan.

### Student Information:
- Name: {student_name}
- Grade: {grade}
- Goals: {", ".join(goals)}
- Weekly Study Hours: {weekly_hours}
- Learning Style: {learning_style or "mixed"}
- Target Date: {target_date or "unspecified"}
{baseline}
### Instructions:
1. If the student is in elementary or middle school (grade <= 8), focus on core subjects (Math, Reading, Science basics).
2. If the student is in high school (grade >= 9) but not preparing for SAT, focus on academic improvement and exam readiness.
3. If the student's goal includes SAT, create a complete SAT study plan.

### Output format (MUST BE VALID JSON):
{{
  "weeks": [
    {{
      "week": 1,
      "focus": "Overview of baseline & fundamentals",
      "daily_plan": [
        {{"day": "Monday", "task": "Watch Khan Academy SAT intro video", "duration_minutes": 45}},
        {{"day": "Tuesday", "task": "Math - Linear Equations practice (10 questions)", "duration_minutes": 60}}
      ],
      "resources": [
        {{"title": "Khan Academy SAT Math Practice", "url": "https://www.khanacademy.org/test-prep/sat"}}
      ]
    }}
  ],
  "tips": [
    "Take one full-length mock every 2 weeks.",
    "Review your weakest topics every Sunday."
  ]
}}

### Notes:
- Recommend free and official resources (Khan Academy, College Board).
- For SAT prep: divide the plan into Reading/Writing & Math sections.
- Adjust study load to match weekly hours.
- Ensure JSON is valid and parseable (no commentary outside JSON).
"""


def mock_exam_blueprint_prompt(goal: str = "SAT") -> str:
    return f"""You are an exam designer. Create a full-length {goal} mock exam blueprint.

### Structure:
Output JSON defining:
- sections: list of exam sections
- each section: name, subject, topics, question_count, time_limit_minutes, difficulty_ratio

### Example Output:
{{
  "sections": [
    {{
      "name": "Reading",
      "subject": "Reading",
      "topics": ["Comprehension", "Inference", "Context Vocabulary"],
      "question_count": 52,
      "time_limit_minutes": 65,
      "difficulty_ratio": {{"easy": 0.4, "medium": 0.4, "hard": 0.2}}
    }}
  ]
}}

Rules:
- For SAT, always include: Reading, Writing, Math (No Calculator), Math (Calculator).
- Ensure total exam time is about 3 hours.
- Output valid JSON only.
"""


def explanation_prompt(concept: str, profile: StudentProfile) -> str:
    style = profile.learning_style
    return f"""Explain {concept} to a grade {profile.grade_level} student who learns best through {style or "various"} methods.

Requirements:
- Make it engaging and relatable to teenagers
- Use {style or "creative"} learning techniques
- Include a surprising fun fact about the topic
- Create a memorable analogy
- Keep it under 200 words

Respond in this exact JSON format:
{{
  "explanation": "your explanation here",
  "funFact": "interesting fact here",
  "analogy": "creative analogy here"
}}
"""


def study_method_prompt(topic: str, time_available: int, profile: StudentProfile) -> str:
    interests = ", ".join(profile.interests) or "general"
    return f"""Suggest a fun, effective study method for a grade {profile.grade_level} student
to learn about {topic} in {time_available} minutes.

Student interests: {interests}
Learning style: {profile.learning_style or "mixed"}

Make it:
- Game-like and interactive
- Suitable for short attention spans
- Incorporates proven techniques (spaced repetition, active recall)
- Includes a micro-challenge
- Maximum 150 words
"""


def fun_fact_prompt(subject: str, current_topic: str) -> str:
    return f"""Share a surprising and relevant fun fact about {current_topic} in {subject}
that would amaze a high school student.

Requirements:
- 1-2 sentences maximum
- Make it truly surprising

Example format: "Did you know? [surprising fact]!"
"""


def encouragement_prompt(progress: int, streak: int) -> str:
    return f"""Give a brief, authentic motivational message to a student who has:
- Made {progress}% progress in their current topic
- Maintained a {streak}-day study streak

Make it:
- Authentic and not cheesy
- Relatable to teenage experiences
- 1 sentence maximum
"""


def micro_quiz_prompt(concept: str, difficulty: str) -> str:
    return f"""Create a quick 1-question multiple choice quiz about {concept} at {difficulty} difficulty level for high school students.

Format your response as valid JSON only:
{{
  "question": "clear question here",
  "options": ["Option A", "Option B", "Option C", "Option D"],
  "correctAnswer": "exact text of correct option",
  "explanation": "brief explanation of why it's correct"
}}
"""


def onboarding_followup_prompt(previous_answers: Sequence[str]) -> str:
    return f"""Based on these student responses: {", ".join(previous_answers)},
generate one more personalized onboarding question to better understand their learning needs.
Keep it conversational and friendly. Maximum 20 words.
"""


def question_explanation_prompt(question: str, topic: str, difficulty: Optional[str] = None) -> str:
    return f"""You are an expert SAT tutor. Provide a detailed explanation for this {difficulty or "medium"} difficulty SAT question on the topic of {topic}.

Question: {question}

Provide your response in JSON format with the following structure:
{{
  "summary": "Brief 2-3 sentence explanation of the concept",
  "keyPoints": ["Point 1", "Point 2", "Point 3"],
  "commonMistakes": ["Mistake 1", "Mistake 2"],
  "links": [
    {{"title": "Resource title", "url": "https://example.com", "type": "article"}}
  ]
}}

Include 2-3 helpful learning resources (Khan Academy, College Board, etc.) with real URLs."""


def keyword_prompt(text: str, grade_level: int) -> str:
    return (
        f'Extract 3-5 key educational terms from: "{text}". '
        f"Grade {grade_level}-appropriate (simple for kids <8, detailed for >=8). "
        "Return only comma-separated terms, no explanations."
    )
