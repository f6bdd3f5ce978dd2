"""Registry: the catalog of banned and restricted substances.

The registry provides:
- Cataloging: canonical names, aliases, severity and justification
- Seeding: idempotent import from the bundled reference dataset
- Snapshots: versioned, cached reads for the ingredient scanner
"""
