"""Package entry point for ``python -m speech_sync``.

WHY: Users inspect timelines and export cue files with
``python -m speech_sync commentary.txt --title ... --duration ...``.

HOW: Delegates to the CLI's main() function.
"""

from speech_sync.cli import main

if __name__ == "__main__":
    main()
