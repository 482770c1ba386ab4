"""Game of the week: a rotating set of reader puzzles."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date


@dataclass(frozen=True)
class Game:
    id: str
    title: str
    intro: str
    content: str
    answer: str

    def to_dict(self) -> dict:
        return asdict(self)


GAME_TEMPLATES: list[Game] = [
    Game(
        id="nutritional_facts",
        title="Nutritional Facts",
        intro="Below is the ingredient list for a popular food product. Can you guess what it is?",
        content=(
            "Enriched wheat flour, niacin, reduced iron, thiamin mononitrate, riboflavin, folic acid, "
            "water, high fructose corn syrup, yeast, soybean oil, salt, wheat gluten, calcium sulfate, "
            "sodium stearoyl lactylate, monoglycerides, calcium iodate..."
        ),
        answer="A loaf of white sandwich bread",
    ),
    Game(
        id="myth_or_fact",
        title="Health Myth or Fact?",
        intro="Test your health knowledge! Are these statements myth or fact?",
        content=(
            "1. You need to drink 8 glasses of water per day → ___\n"
            "2. Cracking your knuckles causes arthritis → ___\n"
            "3. Eating carrots improves your night vision → ___\n\n"
            "A) Myth  B) Fact  C) Partially True"
        ),
        answer="1-C (needs vary by person), 2-A (no evidence supports this), 3-C (only if you're Vitamin A deficient)",
    ),
    Game(
        id="match_condition",
        title="Match the Breakthrough",
        intro="Match each stem cell therapy to the condition it treats:",
        content=(
            "1. Ryoncil (first FDA-approved MSC therapy) → ___\n"
            "2. RPESC-RPE transplant → ___\n"
            "3. CAR-T cell therapy → ___\n\n"
            "A) Age-related macular degeneration\n"
            "B) Certain blood cancers\n"
            "C) Steroid-refractory acute graft-versus-host disease"
        ),
        answer="1-C, 2-A, 3-B",
    ),
    Game(
        id="name_that_organ",
        title="Name That Organ",
        intro="Based on these clues, can you identify the organ?",
        content=(
            "• It's your body's largest internal organ\n"
            "• It filters about 1.4 liters of blood per minute\n"
            "• It can regenerate from as little as 25% of its original tissue"
        ),
        answer="The Liver",
    ),
    Game(
        id="vitamin_match",
        title="Vitamin Match-Up",
        intro="Match each vitamin to its primary function:",
        content=(
            "1. Vitamin K → ___\n2. Vitamin D → ___\n3. Vitamin B12 → ___\n4. Vitamin C → ___\n\n"
            "A) Red blood cell production\nB) Blood clotting\n"
            "C) Calcium absorption for bones\nD) Collagen synthesis and immune function"
        ),
        answer="1-B, 2-C, 3-A, 4-D",
    ),
    Game(
        id="calorie_guess",
        title="Calorie Showdown",
        intro="Which has MORE calories? (Answers may surprise you!)",
        content=(
            "1. A medium avocado OR a glazed donut?\n"
            "2. A cup of granola OR a cup of Frosted Flakes?\n"
            "3. A tablespoon of olive oil OR a tablespoon of butter?\n"
            "4. A banana OR 15 grapes?"
        ),
        answer="1. Avocado (322 vs 269), 2. Granola (597 vs 137!), 3. Olive oil (119 vs 102), 4. Banana (105 vs 52)",
    ),
    Game(
        id="body_numbers",
        title="Body by the Numbers",
        intro="Fill in the blank with the correct number:",
        content=(
            "1. Your body has ___ miles of blood vessels\n"
            "2. Adults have ___ bones (babies have more!)\n"
            "3. Your heart beats about ___ times per day\n"
            "4. You produce about ___ liters of saliva daily"
        ),
        answer="1. 60,000 miles, 2. 206 bones, 3. 100,000 beats, 4. 1-2 liters",
    ),
    Game(
        id="anti_inflammatory",
        title="Anti-Inflammatory Food Quiz",
        intro="Which food in each pair is MORE anti-inflammatory?",
        content=(
            "1. Salmon OR Tilapia?\n2. White rice OR Quinoa?\n3. Almonds OR Peanuts?\n"
            "4. Spinach OR Iceberg lettuce?\n5. Turmeric OR Paprika?"
        ),
        answer="1. Salmon, 2. Quinoa, 3. Almonds, 4. Spinach, 5. Turmeric",
    ),
]

_BY_ID = {game.id: game for game in GAME_TEMPLATES}


def weekly_game(today: date) -> Game:
    """The game scheduled for the ISO week containing ``today``."""
    week = today.isocalendar()[1]
    return GAME_TEMPLATES[week % len(GAME_TEMPLATES)]


def next_game(current: Game) -> Game:
    """The template after ``current``, wrapping around."""
    index = next((i for i, g in enumerate(GAME_TEMPLATES) if g.id == current.id), -1)
    return GAME_TEMPLATES[(index + 1) % len(GAME_TEMPLATES)]


def game_from_dict(data: dict | None, today: date) -> Game:
    """Load a stored game; unknown or missing data falls back to the weekly game."""
    if not data:
        return weekly_game(today)
    if data.get("id") in _BY_ID:
        return _BY_ID[data["id"]]
    try:
        return Game(**data)
    except TypeError:
        return weekly_game(today)
