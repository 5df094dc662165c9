"""
Article extraction: source strategies, learned templates, and the
ordered extraction chain.
"""
