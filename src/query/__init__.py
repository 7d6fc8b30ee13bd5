"""Query validation and normalization.

The query layer turns an untrusted, model-produced query object into a typed `Query`, which is then
compiled into a deterministic Airtable filter formula.
"""
