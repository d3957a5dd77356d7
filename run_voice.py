#!/usr/bin/env python3
"""
Voice Edit Runner.

Convenience script to run without installing the package.

Usage:
    python run_voice.py session --image-url URL
    python run_voice.py relay

Or run as module:
    python -m voice_edit session --image-url URL
"""

import sys
import os

# Add python directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'python'))

if __name__ == "__main__":
    from voice_edit.__main__ import main
    main()
