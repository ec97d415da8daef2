"""
Main application runner for the Knowledge Base Voice Assistant.
"""

import sys
from pathlib import Path

# Allow running from a source checkout without installing
sys.path.append(str(Path(__file__).parent))

from kb_assistant.cli import main


if __name__ == "__main__":
    sys.exit(main())
