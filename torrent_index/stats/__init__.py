"""
Time-bucketed discovery statistics and the estimated torrent count.
"""
