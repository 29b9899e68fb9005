"""模型输出不可用时替换使用的兜底数据。

这些内容是手写的占位题目/解释，只在修复链彻底失败后使用，
调用方会在 GenerationOutcome.used_fallback 中标记并记录 WARNING 日志。
"""

from typing import Any, Dict, List


def fallback_practice_questions(section: str, topic: str, count: int) -> List[Dict[str, Any]]:
    """练习题兜底：数学给一道一元一次方程，其余给语气判断题，难度轮转。"""

    questions = []
    is_math = section == "math"
    levels = ("easy", "medium", "hard")
    for i in range(count):
        if is_math:
            questions.append({
                "question": f"Math practice question {i + 1} for {topic}. If x + 5 = 12, what is the value of x?",
                "choices": ["5", "7", "12", "17"],
                "answer": "7",
                "explanation": "To solve x + 5 = 12, subtract 5 from both sides: x = 12 - 5 = 7.",
                "difficulty": levels[i % 3],
            })
        else:
            questions.append({
                "question": f"Reading practice question {i + 1} for {topic}. Which word best describes the tone of this passage?",
                "choices": ["Optimistic", "Pessimistic", "Neutral", "Aggressive"],
                "answer": "Neutral",
                "explanation": "The passage maintains an objective, neutral tone throughout without expressing strong emotions.",
                "difficulty": levels[i % 3],
            })
    return questions


def fallback_question_explanation(topic: str) -> Dict[str, Any]:
    return {
        "summary": f"This question tests your understanding of {topic}.",
        "keyPoints": [
            "Review the fundamental concepts",
            "Practice similar problems",
            "Pay attention to details",
        ],
        "commonMistakes": [
            "Rushing through the question",
            "Not reading all answer choices",
        ],
        "links": [
            {
                "title": "Khan Academy SAT Prep",
                "url": "https://www.khanacademy.org/sat",
                "type": "practice",
            },
            {
                "title": "College Board SAT Practice",
                "url": "https://satsuite.collegeboard.org/sat/practice-preparation",
                "type": "official",
            },
        ],
    }


def fallback_tutor_explanation(raw_text: str) -> Dict[str, Any]:
    """讲解兜底：保留模型原文的前 300 个字符，配上固定的趣味知识与类比。"""

    return {
        "explanation": (raw_text or "")[:300] + "...",
        "funFact": "Did you know? The brain learns better when information is presented in multiple ways!",
        "analogy": "Think of learning like building a puzzle - each concept is a piece that helps complete the picture!",
    }


def fallback_study_plan(grade: int, weekly_hours: int) -> Dict[str, Any]:
    minutes = max(30, int(weekly_hours * 60 / 4))
    return {
        "weeks": [
            {
                "week": 1,
                "focus": "Math and Reading fundamentals",
                "daily_plan": [
                    {"day": "Monday", "task": "Math - review core algebra skills", "duration_minutes": minutes},
                    {"day": "Wednesday", "task": "Reading - practice passage comprehension", "duration_minutes": minutes},
                    {"day": "Friday", "task": "Writing - grammar and usage drills", "duration_minutes": minutes},
                    {"day": "Sunday", "task": "Review your weakest topics from this week", "duration_minutes": minutes},
                ],
                "resources": [
                    {"title": "Khan Academy", "url": "https://www.khanacademy.org"},
                ],
            }
        ],
        "tips": [
            f"Study in short focused sessions suited to grade {grade}.",
            "Review your weakest topics every Sunday.",
        ],
    }
