"""
Verb Quiz Bot: a Discord vocabulary quiz with persistent progress.
"""
