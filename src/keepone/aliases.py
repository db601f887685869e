from keepone.core.models import SelectionStrategy

STRATEGY_ALIASES = {
    "newest": SelectionStrategy.NEWEST,
    "oldest": SelectionStrategy.OLDEST,
    "shortest-path": SelectionStrategy.SHORTEST_PATH,
}

STRATEGY_CHOICES = list(STRATEGY_ALIASES.keys())

STRATEGY_HELP_TEXT = (
    "Which file to keep in every duplicate group:\n"
    "  newest        : Latest modification time (then creation time, then shorter path)\n"
    "  oldest        : Earliest modification time; files without a timestamp never win\n"
    "  shortest-path : Shortest full path (then the more recent file)\n"
    "Default: newest"
)

EPILOG_TEXT = """
Examples:
  Find duplicate photos and videos in two folders
  %(prog)s -i ~/Pictures ~/Videos -x .jpg .png .mp4

  Same as above + move all but the newest copy to trash (with confirmation prompt)
  %(prog)s -i ~/Pictures ~/Videos -x .jpg .png .mp4 --keep-one

  Keep the copy with the shortest path, no prompt (for scripts)
  %(prog)s -i ~/Pictures --keep-one --strategy shortest-path --force > report.txt
"""
