"""
Keyset-paginated torrent listing with optional free-text filtering.
"""
