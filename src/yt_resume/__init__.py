"""yt-resume — YouTube playlist ingestion and resumable playback.

Scrapes playlist contents through a CORS relay, caches the resolved
video lists and drives a player session that checkpoints watch
position per user, playlist and video.
"""

from yt_resume.version import __version__

__all__: list[str] = ["__version__"]
