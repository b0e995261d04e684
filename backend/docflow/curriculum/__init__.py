"""
Curriculum resolution — which periods/modules an enrollment is billed for.

    normalize.py   write-side normalization used by the Course model
    catalog.py     PeriodCatalog read capability (+ SQL implementation)
    resolver.py    resolve(course, catalog) → ordered period units

Submodules are imported directly; the Course model depends on
`normalize`, so this package must not import the catalog eagerly.
"""
