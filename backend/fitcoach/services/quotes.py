# fitcoach/services/quotes.py
import random
from typing import Optional

QUOTES = (
    "The only bad workout is the one that didn't happen.",
    "Discipline is the bridge between goals and accomplishment.",
    "Your body can stand almost anything. It’s your mind that you have to convince.",
    "Success isn't always about greatness. It's about consistency. Consistent hard work gains success. Greatness will come.",
    "The pain you feel today will be the strength you feel tomorrow.",
)


def daily_quote(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(QUOTES)
