"""
PT-Log backend package.

Record keeping for performance-test logs: projects own an ordered sequence
of named test runs stored in either the production Oracle database or an
embedded SQLite file.
"""
