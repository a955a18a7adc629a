"""
db/ - Database Layer
====================
The psycopg2 connection pool, the two statement primitives every repository
calls (execute_query / execute_write), and the schema DDL.
Nothing here imports from repositories or services.
"""
