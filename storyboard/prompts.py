"""Prompt templates for scene negotiation, scene generation and modification."""

from .config import MAX_SCENES, MIN_SCENES
from .models import CreativeDirection


def character_rule(direction: CreativeDirection) -> str:
    if not direction.character:
        return ""
    return (
        "CRITICAL RULE: The characters must strictly match this description: "
        f'"{direction.character}". '
    )


def style_rule(direction: CreativeDirection) -> str:
    return f'The visual style must be: "{direction.style}". '


def build_negotiation_prompt(script: str, direction: CreativeDirection) -> str:
    """Ask the model to split the script into scenes and answer with only the count."""
    return f"""You are a storyboard artist AI. Your task is to analyze the script below, divide it into the minimum number of distinct visual scenes (shots) that capture the key action, and then generate those scenes sequentially. Use your best judgment to define the scenes. Limit the total number of scenes to a maximum of {MAX_SCENES} to ensure a good visual flow.

**CRITICAL RULE: For your first response, you must ONLY provide a number between {MIN_SCENES} and {MAX_SCENES} representing the total number of scenes you have broken the script into. DO NOT include the image or any other text yet. For example, if you decide on 5 scenes, your entire response should be: 5**

{character_rule(direction)}{style_rule(direction)}

Here is the full script:

---
{script}
---"""


def build_scene_prompt(scene_number: int, scene_count: int) -> str:
    """Per-scene continuation prompt. The first scene is worded differently."""
    if scene_number == 1:
        return (
            f"Now that you have confirmed the total scenes is {scene_count}, "
            "please provide the action text and generate the image for **Scene 1**."
        )
    return (
        "Excellent. Now please provide the action text and generate the image "
        f"for **Scene {scene_number}** of {scene_count}. Focus on the next part "
        "of the overall script to ensure a progressive narrative."
    )


def build_modification_prompt(instruction: str, direction: CreativeDirection) -> str:
    return (
        f"Follow these rules: {character_rule(direction)}{style_rule(direction)}"
        "With those rules in mind, apply the following modification to this image "
        f'while keeping the composition consistent: "{instruction}".'
    )
