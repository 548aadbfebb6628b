"""
Daily feed access and display helpers.

Modules
-------
client  : FeedClient (httpx) + load_feed_file() + parse_feed().
display : choose_text() + find_image() — rendering helpers, not scoring.
"""
