"""Configuration management for the chatbot CLI."""
import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Credentials (read again at call time by the remote backends)
TOAST_AUTH_TOKEN_ENV = "TOAST_AUTH_TOKEN"
GROQ_API_KEY_ENV = "GROQ_API_KEY"

# Conversation Configuration
DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant"
DEFAULT_MODEL = os.getenv("CHATBOT_MODEL", "stub")

# Transcript Configuration
CHATBOT_LOGS = os.getenv("CHATBOT_LOGS", ".")
FILENAME_FRAGMENT_SIZE = 30

# Logging Configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
CHATBOT_LOG_FILE = os.getenv("CHATBOT_LOG_FILE")

# Retry Configuration
RETRY_ATTEMPTS = int(os.getenv("RETRY_ATTEMPTS", "3"))
RETRY_INITIAL_DELAY = float(os.getenv("RETRY_INITIAL_DELAY", "1.0"))  # seconds
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "60.0"))  # seconds

# ToastJam Configuration
TOAST_JAM_URL = os.getenv(
    "TOAST_JAM_URL",
    "https://preprod.eng.toasttab.com/api/service/ds-model/v1/scone/ds-toast-jam/"
)
TOAST_JAM_MODEL = "llama_2_13b_chat"
TOAST_PRODUCT = "chatbot-cli"
TOAST_TEAM = "bachmann"
TOAST_ROUTING_HEADERS = {
    "Toast-Restaurant-External-Id": "c7b9367b-bc36-49ca-99e6-b4417b335476",
    "Toast-Management-Set-Guid": "50f552fc-cc24-4cbe-84e1-20d96e644c8b",
    "Toast-Restaurant-Set-Guid": "a60f8d88-2ce1-4d70-a478-c42d493bf286",
}

# Groq Configuration
GROQ_MODELS = ("llama-3.1-8b-instant", "llama-3.3-70b-versatile")
GROQ_MAX_TOKENS = 1024
GROQ_TEMPERATURE = 0.7

# Logging defaults for library use; the CLI reconfigures via logger.setup_logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
