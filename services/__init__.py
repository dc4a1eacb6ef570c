"""
Services package for the listing API.

Business logic for submissions, ownership, appeals, packs and cached reads.
Everything a request needs is reached through ``services.context.AppContext``.
"""
