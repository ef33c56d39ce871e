"""Reviews app package.

Player ratings of venues, owner responses, helpful votes, flagging and
admin moderation, plus the Wilson-score based venue ranking.
"""
