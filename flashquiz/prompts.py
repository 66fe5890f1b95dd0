"""Prompts for the answer evaluator and the end-of-session coach."""

EVALUATOR_SYSTEM = (
    "You are an educational assistant evaluating quiz answers. Be concise and helpful."
)

EVALUATE_ANSWER = """<task>
Evaluate this answer and respond ONLY with valid JSON.
</task>

<flashcard>
Question: {question}
Correct Answer: {correct_answer}
User's Answer: {user_answer}
</flashcard>

<output_format>
Respond ONLY with this exact JSON structure (no markdown, no extra text):
{{
    "is_correct": boolean,
    "correctness_score": float between 0.0 and 1.0,
    "corrections": ["correction1", "correction2"],
    "explanation": "detailed explanation. must contain also deep dives on the topic regardless of correctness",
    "suggestions": ["suggestion1", "suggestion2"]
}}
</output_format>

<grading_rules>
- Do not account for minor typos in the user's answer when determining correctness.
</grading_rules>"""


ASSESSMENT_SYSTEM = (
    "You are an educational assessment coach. Provide constructive, specific "
    "feedback to help students improve."
)

ASSESS_SESSION = """<task>
Analyze this quiz session for "{deck_name}" and provide a comprehensive assessment.
</task>

<results>
- Total Questions: {total}
- Answered: {answered}
- Correct (AI-evaluated): {correct}
</results>

<question_answer_pairs>
{qa_list}
</question_answer_pairs>

<output_format>
Respond ONLY with valid JSON (no markdown, no extra text) using this exact structure:
{{
    "grade_percentage": float (0-100),
    "mastery_level": "Beginner" | "Intermediate" | "Advanced" | "Expert",
    "overall_feedback": "detailed paragraph analysis of performance",
    "suggestions": ["suggestion1", "suggestion2", "suggestion3"],
    "strengths": ["strength1", "strength2"],
    "weaknesses": ["weakness1", "weakness2"]
}}
</output_format>

<guidelines>
- grade_percentage: weighted by answered questions, consider AI scores
- mastery_level: Beginner (0-40%), Intermediate (41-70%), Advanced (71-90%), Expert (91-100%)
- overall_feedback: 2-3 sentences analyzing patterns, progress, areas for improvement
- suggestions: 3-5 actionable, specific study recommendations
- strengths: 2-3 specific areas where user performed well
- weaknesses: 2-3 specific areas needing improvement
</guidelines>"""

# Score at or above which an answer counts as correct in session stats.
CORRECT_THRESHOLD = 0.7
