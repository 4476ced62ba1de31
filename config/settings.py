"""Zentrale Konfigurationsverwaltung"""

import os
from dotenv import load_dotenv
from pathlib import Path

config_dir = Path(__file__).parent
env_file = config_dir / '.env'
load_dotenv(env_file)

# --- JTL-Wawi REST API ---
JTL_API_URL = os.getenv('JTL_API_URL', 'http://127.0.0.1:5883/api/eazybusiness/v1')
JTL_API_KEY = os.getenv('JTL_API_KEY', '')
JTL_APP_ID = os.getenv('JTL_APP_ID', 'syncWithJoomla/v2')
JTL_APP_VERSION = os.getenv('JTL_APP_VERSION', '2.0.0')
JTL_API_TIMEOUT = int(os.getenv('JTL_API_TIMEOUT', '30'))

# --- Scheduler ---
SCHEDULER_TICK_SECONDS = int(os.getenv('SCHEDULER_TICK_SECONDS', '60'))
SCHEDULER_MAX_CONCURRENT_JOBS = int(os.getenv('SCHEDULER_MAX_CONCURRENT_JOBS', '2'))
SCHEDULER_SHUTDOWN_WAIT_SECONDS = int(os.getenv('SCHEDULER_SHUTDOWN_WAIT_SECONDS', '30'))

# --- Sync ---
DEFAULT_SYNC_HOURS = int(os.getenv('DEFAULT_SYNC_HOURS', '24'))
SYNC_ORDER_DELAY_SECONDS = float(os.getenv('SYNC_ORDER_DELAY_SECONDS', '0.15'))

# --- Dateipfade (data/ Verzeichnis) ---
DATA_DIR = Path(os.getenv('DATA_DIR', str(Path(__file__).parent.parent / 'data')))

JOBS_FILE = DATA_DIR / os.getenv('JOBS_FILE', 'scheduled_jobs.json')
SHOPS_FILE = DATA_DIR / os.getenv('SHOPS_FILE', 'config.json')

LOG_DIR = Path(os.getenv('LOG_DIR', str(Path(__file__).parent.parent / 'logs')))
