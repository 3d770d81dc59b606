import os

from dotenv import load_dotenv

from qmoji.cli.commands import app

# Load .env file from ~/.qmoji/ if it exists
# Precedence: existing env vars > .env file (override=False)
load_dotenv(os.path.expanduser("~/.qmoji/.env"), override=False)

if __name__ == "__main__":
    app()
