"""Flavour text shown by the hosts when the player lands in a city."""
from __future__ import annotations
import random

WELCOME_MESSAGES = [
    "Though you've just arrived, you look around and immediately realize that you are in {city}.",
    "Something in the air tells you you've just arrived in {city}.",
    "That rustic aroma seems so familiar. \"Ah yes,\" you tell yourself. \"This could only be {city}.\"",
    "The sunsets in {city} are so beautiful this time of year. If only you had time to linger.",
]


def welcome_line(city_name: str, rng: random.Random | None = None) -> str:
    template = (rng or random).choice(WELCOME_MESSAGES)
    return template.format(city=city_name)


def describe_result(result) -> str:
    """One console line for a CommandResult."""
    if result.kind == "moved":
        line = welcome_line(result.city.name)
        if result.arrived:
            line += " This is your secret destination!"
        return line
    if result.kind == "move_failed":
        return "Could not move to a city at this time."
    if result.kind == "info":
        c = result.city
        return (
            f"Current location: {c.name}, {c.admin_name}, {c.country}\n"
            f"Your destination is {result.distance_km:.0f}km away at a bearing of {result.bearing:.0f} degrees."
        )
    if result.kind == "finished":
        return "You already reached your destination. Well traveled, Wanderer!"
    return f"I don't know how to {result.command}"
