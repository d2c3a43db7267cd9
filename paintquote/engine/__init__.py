"""
Quote generation engine.

Pure Python, no I/O. Given rooms, a catalog and a display config,
produce an itemized QuoteDocument:

    aggregator        Stage 1 — surfaces → billable units
    pricing_resolver  Stage 2 — billable units → priced lines
    grouping          Stage 3 — priced lines → sections
    assembler         Stage 4 — sections → QuoteDocument with totals
"""
