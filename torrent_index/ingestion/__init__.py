"""
Ingestion side: storing newly discovered torrents.
"""
