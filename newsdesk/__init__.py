"""newsdesk – multi-source financial news aggregation.

Turns raw records from heterogeneous connectors (SNS posts, TDnet
disclosures, press sites) into one canonical, deduplicated JSON
collection, and answers filter/search/sort queries over it with a
display-time importance score.

The core (normalize → classify → merge → query) is synchronous and
pure apart from the single JSON store rewrite in ``store_json``.
"""
