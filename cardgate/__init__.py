"""
Session lifecycle and access authorization for video cards.

Each card points at a video. Students log in (on one device at a time) and
open the cards their subscriptions cover; administrators can open anything,
and can force a student to log out.
"""
