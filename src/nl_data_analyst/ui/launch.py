"""Console entry point: `nl-data-analyst [streamlit options]` starts the UI."""

import sys
from pathlib import Path

APP_PATH = Path(__file__).parent / "app.py"


def main() -> None:
    from streamlit.web import cli as stcli

    sys.argv = ["streamlit", "run", str(APP_PATH), *sys.argv[1:]]
    sys.exit(stcli.main())
