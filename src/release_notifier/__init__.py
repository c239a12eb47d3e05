"""Release notification sender.

Formats GitHub release metadata into a chat message document and delivers
it to an incoming webhook with a single HTTP POST.
"""

__version__ = "0.1.0"
