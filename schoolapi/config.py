import os
import logging

from dotenv import load_dotenv

load_dotenv(override=True)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Configure Logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(message)s",
    handlers=[logging.StreamHandler()]
)

APP_TITLE = os.getenv("APP_TITLE", "School Administration API")

# Comma separated, "*" allows every origin
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Defaults applied to newly created academic years
PROMOTION_AVERAGE = float(os.getenv("PROMOTION_AVERAGE", "50"))
REPEAT_AVERAGE = float(os.getenv("REPEAT_AVERAGE", "40"))
DROP_AVERAGE = float(os.getenv("DROP_AVERAGE", "30"))
PASSING_PERCENTAGE = float(os.getenv("PASSING_PERCENTAGE", "40"))

ABSENCE_STREAK_THRESHOLD = int(os.getenv("ABSENCE_STREAK_THRESHOLD", "3"))

HOUSE_BLOCKS = ["A", "B", "C", "D", "E", "F"]
HOUSE_BLOCK_CAPACITY = 50
