"""
repositories/ - Data Access Layer
==================================
Each repository encapsulates all SQL queries for one table of the marketplace.
Repositories compose a BaseRepository for generic CRUD, add their own joined
and aggregate queries, and return domain model objects or detail dicts.
"""
