"""
Pastebin Lite - share text through short links that can expire or self-destruct.
"""
