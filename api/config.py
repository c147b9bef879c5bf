import os

API_TITLE = "Quran AI API"
API_VERSION = "1.0.0"

MODEL_ID = os.getenv("AI_MODEL_ID", "@cf/meta/llama-3.3-70b-instruct-fp8-fast")
MAX_TOKENS = int(os.getenv("AI_MAX_TOKENS", "512"))
TEMPERATURE = float(os.getenv("AI_TEMPERATURE", "0.7"))

MAX_QUESTION_CHARS = 500
ASK_VERSE_LIMIT = 3
SEARCH_DEFAULT_LIMIT = 10
