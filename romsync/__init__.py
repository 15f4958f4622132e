"""
romsync - ROM ingestion pipeline

Classifies, verifies and de-duplicates game ROMs, then publishes them into a
content-addressed archive and a sync tree with emulator frontend playlists.
"""

__version__ = "0.3.0"
