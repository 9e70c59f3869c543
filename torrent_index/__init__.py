"""
Persistence layer for a torrent-metadata index on PostgreSQL.

Open a handle with `core.db.open_database(dsn)` and pass it to the feature
functions:

- ingestion.repository: does_torrent_exist, add_new_torrent
- torrents.repository: get_torrent, get_files
- search.service: query_torrents, cursor_for
- stats.service: get_statistics
- stats.repository: get_number_of_torrents
"""
