"""
FeedPoster Database
===================
"""
