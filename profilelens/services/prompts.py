import json
from typing import Any

LANGUAGE_NAMES = {"ar": "Arabic", "en": "English"}

RECOMMENDATION_SECTIONS = (
    "summary",
    "skills",
    "experience",
    "projects",
    "education",
    "recommendations",
    "publications",
    "courses",
    "honorsawards",
    "languages",
    "certificates",
    "volunteer",
    "linkedinurl",
    "headline",
    "country",
    "featured",
    "connections",
    "followers",
    "openToWork",
    "experiences",
)


def language_name(language: str | None) -> str:
    return LANGUAGE_NAMES.get((language or "en").lower(), "English")


def analysis_prompt(profile_data: dict[str, Any], language: str = "en") -> str:
    recommendations = ",\n".join(
        f'        "{section}": ["recommendation1", "recommendation2", ...]' for section in RECOMMENDATION_SECTIONS
    )
    return f"""
    According to this JSON object {json.dumps(profile_data, ensure_ascii=False, default=str)}
    analyze the professional profile and provide a comprehensive assessment.
    Return your response as JSON with the following structure:

    {{
      "aiSummary": "string",
      "strengths": ["strength1", "strength2", ...],
      "weaknesses": ["weakness1", "weakness2", ...],
      "analysis_recommendations": {{
{recommendations}
      }},
      "industryInsights": "string",
      "profileOptimization": ["optimization1", "optimization2", ...],
      "keywordAnalysis": {{
        "relevantKeywords": ["keyword1", "keyword2", ...],
        "missingKeywords": ["keyword1", "keyword2", ...]
      }},
      "competitiveAnalysis": "string"
    }}

    Be kind and friendly and encourage the user to improve their profile.
    aiSummary opens with something good about the profile, addressed by first name,
    followed by a short summary of the profile (up to 250 words).

    Focus on:
    1. Profile completeness and professionalism
    2. Industry relevance and keyword optimization
    3. Networking potential and engagement
    4. Career progression and positioning
    5. Specific actionable improvements

    Write every text value in {language_name(language)}. Return only valid JSON without any additional text or formatting.
    """


def optimization_prompt(content: str, section: str, language: str = "en") -> str:
    return f"""
    You are an expert career coach who rewrites professional profile sections.
    Rewrite the following "{section}" section so it is clear, specific and keyword rich,
    keeps every fact from the original and invents nothing.

    Original {section}:
    \"\"\"{content}\"\"\"

    Write the result in {language_name(language)}.
    Return JSON of the form {{"optimizedContent": "string"}} and nothing else.
    """
