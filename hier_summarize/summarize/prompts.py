"""Prompt templates for summarization."""

CHUNK_PROMPT = """Summarize the following text into exactly {count} concise bullet points.

STRICT REQUIREMENTS:
- Extract ONLY information that is explicitly stated in the text
- DO NOT invent details, infer conclusions, or add information not in the source
- DO NOT create contradictory statements (e.g., "X to X" or "Y from Y")
- Use plain text bullets starting with "- " (one fact per line)
- Keep each bullet under {max_words} words
- Focus on concrete actions, tools, results, and key facts
- Remove filler words ("like", "you know", "so"), repetition, and redundant phrases
- If a fact is unclear, omit it entirely rather than guessing
- Write complete sentences ending with a period
- Avoid vague passive constructions (e.g., "The app is being used")

Text:
{text}

Bullet points:"""

FINAL_PROMPT = """Merge the following bullet points into exactly {count} concise bullet points.

STRICT REQUIREMENTS:
- Only combine information that appears in the source bullets
- DO NOT invent, infer, or add details not explicitly in the source bullets
- DO NOT create contradictory statements
- Group related concepts together into coherent, high-level bullets
- Use plain text bullets starting with "- " (one fact per line)
- Output EXACTLY {count} bullets, no more, no less
- Keep each bullet under {max_words} words but complete
- Remove duplicates and merge similar ideas
- Remove filler words ("like", "you know", "so"), repetition, and redundant phrases
- If bullets conflict, prefer the most frequently mentioned information
- Use active voice with concrete subjects and actions

Source bullets:
{bullets}

Merged bullets (exactly {count}):"""

CHUNK_MAX_WORDS = 25
FINAL_MAX_WORDS = 30


def chunk_prompt(text: str, count: int) -> str:
    return CHUNK_PROMPT.format(text=text, count=count, max_words=CHUNK_MAX_WORDS)


def final_prompt(bullets: str, count: int) -> str:
    return FINAL_PROMPT.format(bullets=bullets, count=count, max_words=FINAL_MAX_WORDS)
