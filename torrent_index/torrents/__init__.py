"""
Read side: single-torrent lookups.
"""
