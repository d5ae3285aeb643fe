"""Configuration constants and environment variable loading for the storyboard module."""

import os
from dotenv import load_dotenv

load_dotenv()

# ==================== API KEYS ====================
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")

# ==================== MODELS ====================
GEMINI_BASE_URL = os.getenv(
    "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
)
GEMINI_TEXT_MODEL = os.getenv("GEMINI_TEXT_MODEL", "gemini-2.5-flash")
GEMINI_IMAGE_MODEL = os.getenv("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image-preview")

# ==================== TRANSPORT ====================
MAX_ATTEMPTS = 3
BASE_DELAY_SECONDS = 1.0  # 1s, 2s, 4s ...
REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "120"))

# ==================== SCENE COUNT ====================
MIN_SCENES = 1
MAX_SCENES = 15
DEFAULT_SCENE_COUNT = 5

# ==================== PANELS ====================
PLACEHOLDER_IMAGE_URL = "https://placehold.co/1280x720/1f2937/4b5563?text=Image+Failed"
FAILED_ORIGINAL_CAPTION = "Generation Failed"
FALLBACK_CAPTION = "Description not provided."
DEFAULT_REFUSAL_MESSAGE = "The model refused to generate an image."
EMPTY_RESPONSE_MESSAGE = "The AI response was empty, invalid, or blocked."

# ==================== CREATIVE DIRECTION ====================
STYLE_PRESETS = [
    "Cinematic",
    "Watercolor",
    "Comic Book",
    "Anime",
    "Pencil Sketch",
    "3D Render",
]
DEFAULT_STYLE = os.getenv("STORYBOARD_DEFAULT_STYLE", "Cinematic")

QUICK_MODIFICATIONS = [
    "Make it nighttime",
    "Make it rain",
    "Change the camera angle to a close-up",
    "Change the camera angle to a wide shot",
    "Make the mood more dramatic",
]

# ==================== PLAYBACK ====================
SLIDESHOW_INTERVAL_SECONDS = 5.0
KEN_BURNS_ANIMATIONS = ["zoom-in", "pan-right", "pan-left", "pan-down"]
