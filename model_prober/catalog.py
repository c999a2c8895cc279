"""Fixed probe content: prompt, request bounds and the fallback catalog."""

PROBE_PROMPT = "Write a single-line friendly hello message."
MAX_TOKENS = 50
TEMPERATURE = 0.7

NO_RESPONSE_CONTENT = "No response content"

# Used when the caller has no model list, e.g. when the key's access tier
# does not allow listing models.
FALLBACK_MODEL_IDS: tuple[str, ...] = (
    "gpt-4o",
    "gpt-4o-mini",
    "gpt-4-turbo",
    "gpt-4",
    "gpt-3.5-turbo",
    "gpt-3.5-turbo-16k",
    "text-davinci-003",
    "text-davinci-002",
    "text-curie-001",
    "text-babbage-001",
    "text-ada-001",
)

FALLBACK_OWNER = "openai"
