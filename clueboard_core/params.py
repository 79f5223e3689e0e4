import json
import os
from pathlib import Path

from dotenv import load_dotenv

### Environmental Variables

# Load .env from the working directory (repository root in dev)
load_dotenv()

# Determine active environment (dev/prod)
environment = os.getenv("CLUEBOARD_ENV", "dev").lower()
if environment not in {"dev", "prod"}:
    raise ValueError("CLUEBOARD_ENV must be 'dev' or 'prod'")

PACKAGE_DIR = Path(__file__).resolve().parent
SAMPLE_DATA_DIR = PACKAGE_DIR / "data" / "sample"

data_dir = Path(os.getenv("CLUEBOARD_DATA_DIR", str(SAMPLE_DATA_DIR)))
base_url = os.getenv("CLUEBOARD_BASE_URL")
output_dir = Path(os.getenv("CLUEBOARD_OUTPUT_DIR", "report"))
cache_dir = Path(os.getenv("CLUEBOARD_CACHE_DIR", "data_cache"))

### Report Config
with open(PACKAGE_DIR / "report_config.json", "r") as f:
    report_config = json.load(f)

dataset_order = report_config["datasets"]
dataset_config = {entry["dataset"]: entry for entry in dataset_order}

# JSON keys are strings; rounds are ints everywhere else
round_labels = {int(k): v for k, v in report_config.get("round_labels", {}).items()}

chart_config = report_config.get("charts", {})
chart_style = chart_config.get("style", "whitegrid")
chart_figsize = tuple(chart_config.get("figsize", (10, 5)))
chart_dpi = int(chart_config.get("dpi", 120))
top_n = int(os.getenv("CLUEBOARD_TOP_N", chart_config.get("top_n", 10)))
featured_game = chart_config.get("featured_game")
