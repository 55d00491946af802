PRESENTERS = [
    "James Harkin",
    "Anna Ptaszynski",
    "Dan Schreiber",
    "Andrew Hunter Murray",
]

# Short forms heard on the show; resolution is left to the model
PRESENTER_ALIASES = {
    "James": "James Harkin",
    "Anna": "Anna Ptaszynski",
    "Dan": "Dan Schreiber",
    "Andy": "Andrew Hunter Murray",
    "Andrew": "Andrew Hunter Murray",
}

FACT_RULES = """
FACT EXTRACTION:
- Extract the exact 1-2 sentence wording of each fact as stated by the presenter
- The four main hosts are: {presenters}
- If only first names or nicknames are used ({aliases}), match them to the full names above
- Identify guest presenters by context (they'll be introduced by name) and set "guest" to true for them
- Almost never does the same person present multiple facts in one episode
- Start times should be HH:MM:SS format from the transcript; use "unknown" if unreliable

Facts are typically introduced with patterns like:
- "It's time for fact number 1/2/3/4"
- "Our first/second/third/final fact of the show"
- "Okay, it is time for fact number X and that is [Name]"
""".strip()

GENERAL_EXTRACTION_PROMPT = """
You are given a transcript of an episode of "No Such Thing As A Fish" podcast in CSV format with columns: start_hhmmss,end_hhmmss,text.

EPISODE TYPE CLASSIFICATION (CRITICAL):
- "standard": The regular weekly episode format with exactly FOUR numbered facts (fact 1, fact 2, fact 3, fact 4). This is the default and most common type. Episodes are numbered (e.g., "575. No Such Thing As..."). If you see phrases like "it's time for fact number 1/2/3/4" or "our first/second/third/final fact", this is STANDARD.
- "bonus": Special episodes that explicitly have "bonus" in the title (e.g., "Bonus: Drop Us A Line"). These typically do NOT follow the four-fact structure.
- "compilation": Episodes with "compilation" in the title. These are clip shows and do NOT have four new facts.
- "other": Quizzes, live shows with unusual formats, or anything truly unusual.

IMPORTANT: If the episode follows the standard pattern of introducing four numbered facts, it is STANDARD, not bonus or other.

{fact_rules}

For STANDARD episodes return exactly four facts numbered 1 to 4.
For NON-STANDARD episodes (compilation, bonus, other): Return an EMPTY facts array.

Return only JSON that matches the provided schema.
""".strip()

STANDARD_EXTRACTION_PROMPT = """
You are given a transcript of a standard episode of "No Such Thing As A Fish" podcast in CSV format with columns: start_hhmmss,end_hhmmss,text.

This episode is known to follow the regular format: four presenters each share one fact.
Set "episode_type" to "standard" and return exactly four facts numbered 1, 2, 3 and 4, each number used once.

{fact_rules}

Return only JSON that matches the provided schema.
""".strip()
