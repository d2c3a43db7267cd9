"""
Stage 4 tests — Quote Assembler.

Tests:
1-5.   Scenarios A-D (bundled inclusive, separated allowance, unmeasured
       surface, missing catalog rate)
6-8.   Totals: subtotal = sum of lines, tax, show_tax_line
9-11.  Idempotence and toggle independence
12-14. Labor models end to end, template id, fatal validation errors
15-18. Unpainted and prime-only surfaces, project supplies
"""

import pytest

from paintquote.engine.assembler import QuoteAssembler, assemble_quote
from paintquote.engine.catalog import CatalogIndex
from paintquote.engine.display_config import DEFAULT_DISPLAY_CONFIG, QuoteDisplayConfigBuilder
from paintquote.engine.supplies import DEFAULT_SUPPLY_RULES
from paintquote.errors import ValidationError
from paintquote.schemas import (
    LaborEstimate, LineKind, OrgSettings, QuoteTemplate, Room, Surface,
)


def _line_sum(doc):
    return round(sum(item.amount for item in doc.line_items), 2)


# ============================================================
# Scenarios
# ============================================================

def test_scenario_a_bundled_inclusive(bedroom, catalog):
    doc = assemble_quote([bedroom], catalog, DEFAULT_DISPLAY_CONFIG)
    assert len(doc.line_items) == 1
    line = doc.line_items[0]
    assert line.amount == 1200.00          # 400 × 2 × 1.50
    assert line.quantity == 400.0
    assert line.unit == "sqft"
    assert line.rate == 3.00               # per sq ft, both coats
    assert doc.subtotal == 1200.00
    assert doc.sections[0].title == "Bedroom"
    assert doc.warnings == []


def test_scenario_b_separated_allowance(bedroom, catalog):
    config = QuoteDisplayConfigBuilder().separated().materials("allowance").build()
    doc = assemble_quote([bedroom], catalog, config)
    items = doc.line_items
    assert len(items) == 2
    assert (items[0].kind, items[0].amount) == (LineKind.LABOR, 1200.00)
    assert (items[1].kind, items[1].amount) == (LineKind.MATERIAL, 150.00)
    assert doc.subtotal == 1350.00


def test_scenario_c_unmeasured_surface_is_silent(catalog):
    room = Room(id="r-bed", name="Bedroom", surfaces=[
        Surface(id="w", surface_type="wall", quantity=400, coats=2),
        Surface(id="c", surface_type="ceiling", quantity=0, coats=2),
    ])
    doc = assemble_quote([room], catalog, DEFAULT_DISPLAY_CONFIG)
    assert [i.surface_type for i in doc.line_items] == ["wall"]
    assert doc.warnings == []
    assert doc.subtotal == 1200.00


def test_scenario_d_missing_rate_becomes_warning(house, catalog):
    catalog = [c for c in catalog if c.id != "lab-door"]
    doc = assemble_quote(house, catalog, DEFAULT_DISPLAY_CONFIG)

    assert len(doc.warnings) == 1
    warning = doc.warnings[0]
    assert warning.room_id == "r-kitchen"
    assert warning.surface_type == "door"
    assert warning.kind == "labor"
    assert warning.section == "room:r-kitchen"

    kitchen = doc.sections[1]
    assert kitchen.warnings == [warning]
    assert [i.surface_type for i in kitchen.line_items] == ["wall"]
    assert doc.subtotal == 3820.00         # 4000 less the $180 door line
    assert _line_sum(doc) == doc.subtotal


def test_section_with_every_line_missing_is_kept(catalog):
    room = Room(id="r1", name="Hall", surfaces=[Surface(id="d", surface_type="door", quantity=3)])
    catalog = [c for c in catalog if c.id != "lab-door"]
    doc = assemble_quote([room], catalog, DEFAULT_DISPLAY_CONFIG)
    assert [s.title for s in doc.sections] == ["Hall"]
    assert doc.sections[0].line_items == []
    assert len(doc.sections[0].warnings) == 1
    assert doc.subtotal == 0.0


def test_missing_allowance_warns_per_section(house, catalog):
    catalog = [c for c in catalog if c.id != "mat-allow"]
    config = QuoteDisplayConfigBuilder().separated().materials("allowance").build()
    doc = assemble_quote(house, catalog, config)
    assert len(doc.warnings) == 4
    assert all(w.kind == "material" for w in doc.warnings)
    assert doc.subtotal == 4000.00


# ============================================================
# Totals
# ============================================================

def test_subtotal_tax_and_total(house, catalog, org):
    doc = assemble_quote(house, catalog, DEFAULT_DISPLAY_CONFIG, org)
    assert doc.subtotal == 4000.00
    assert doc.tax_rate == 0.08
    assert doc.tax == 320.00
    assert doc.total == 4320.00
    assert _line_sum(doc) == doc.subtotal
    assert sum(s.subtotal for s in doc.sections) == pytest.approx(doc.subtotal, abs=0.01)


def test_hidden_tax_line_charges_no_tax(bedroom, catalog, org):
    config = QuoteDisplayConfigBuilder().toggles(show_tax_line=False).build()
    doc = assemble_quote([bedroom], catalog, config, org)
    assert doc.show_tax_line is False
    assert doc.tax_rate == 0.08
    assert doc.tax == 0.0
    assert doc.total == doc.subtotal == 1200.00


def test_sum_of_lines_matches_subtotal_with_fractional_rates(catalog):
    rooms = [
        Room(id=f"r{i}", name=f"Room {i}", surfaces=[
            Surface(id=f"w{i}", surface_type="wall", quantity=101.37 + i, coats=3),
            Surface(id=f"t{i}", surface_type="trim", quantity=33.33, coats=1),
        ])
        for i in range(7)
    ]
    org = OrgSettings(tax_rate=0.0725)
    config = (QuoteDisplayConfigBuilder().separated("combined_section")
              .materials("itemized_volume").build())
    doc = assemble_quote(rooms, catalog, config, org)
    assert abs(_line_sum(doc) - doc.subtotal) < 0.01
    assert abs(doc.subtotal + doc.tax - doc.total) < 0.01


# ============================================================
# Determinism and toggles
# ============================================================

def test_assembly_is_idempotent(house, catalog, org):
    config = (QuoteDisplayConfigBuilder().organize_by("surface").separated("combined_setup")
              .materials("itemized_volume").build())
    first = assemble_quote(house, catalog, config, org)
    second = assemble_quote(house, catalog, config, org)
    assert first == second
    assert first.model_dump_json() == second.model_dump_json()


def test_hiding_quantities_and_rates_never_changes_amounts(house, catalog):
    base = QuoteDisplayConfigBuilder().separated().materials("itemized_volume")
    shown = assemble_quote(house, catalog, base.build())
    hidden = assemble_quote(house, catalog,
                            base.toggles(show_quantities=False, show_rates=False).build())

    assert [i.amount for i in shown.line_items] == [i.amount for i in hidden.line_items]
    assert all(i.quantity is None and i.unit is None for i in hidden.line_items)
    assert all(i.rate is None for i in hidden.line_items)
    assert any(i.quantity is not None for i in shown.line_items)
    assert shown.subtotal == hidden.subtotal


def test_catalog_index_can_be_reused(house, catalog):
    index = CatalogIndex(catalog)
    assembler = QuoteAssembler()
    assert assembler.assemble(house, index, DEFAULT_DISPLAY_CONFIG) == \
        assembler.assemble(house, catalog, DEFAULT_DISPLAY_CONFIG)


# ============================================================
# Labor models, template, fatal errors
# ============================================================

def test_hourly_quote_with_supplied_estimates(bedroom, catalog):
    config = QuoteDisplayConfigBuilder().labor("hourly").build()
    estimates = [LaborEstimate(room_id="r-bed", surface_type="wall", hours=7)]
    doc = assemble_quote([bedroom], catalog, config, labor_estimates=estimates)
    assert doc.subtotal == 420.00
    assert doc.line_items[0].unit == "hr"


def test_hourly_quote_without_estimates_warns(bedroom, catalog):
    config = QuoteDisplayConfigBuilder().labor("day_rate").build()
    doc = assemble_quote([bedroom], catalog, config)
    assert doc.line_items == []
    assert "days" in doc.warnings[0].message


def test_template_id_is_carried(bedroom, catalog):
    template = QuoteTemplate(id="tpl-1", org_id="org-1", name="Standard")
    doc = assemble_quote([bedroom], catalog, template)
    assert doc.template_id == "tpl-1"
    assert assemble_quote([bedroom], catalog, DEFAULT_DISPLAY_CONFIG).template_id is None


def test_unknown_surface_type_aborts(bedroom, catalog):
    bad = Room(id="r2", name="Sunroom", surfaces=[Surface(id="x", surface_type="gazebo", quantity=5)])
    with pytest.raises(ValidationError):
        assemble_quote([bedroom, bad], catalog, DEFAULT_DISPLAY_CONFIG)


def test_duplicate_catalog_ids_abort(bedroom, catalog):
    with pytest.raises(ValidationError):
        assemble_quote([bedroom], catalog + [catalog[0]], DEFAULT_DISPLAY_CONFIG)


# ============================================================
# Unpainted surfaces, supplies
# ============================================================

def test_zero_coat_surface_without_primer_is_not_quoted(catalog):
    room = Room(id="r1", name="Den", surfaces=[
        Surface(id="w", surface_type="wall", quantity=100, coats=0),
        Surface(id="c", surface_type="ceiling", quantity=100, coats=1),
    ])
    doc = assemble_quote([room], catalog, DEFAULT_DISPLAY_CONFIG)
    assert [i.description for i in doc.line_items] == ["Paint Ceilings"]
    assert all(i.amount > 0 for i in doc.line_items)
    assert doc.warnings == []


def test_prime_only_surface_bills_just_the_primer(catalog):
    room = Room(id="r1", name="Den", surfaces=[
        Surface(id="w", surface_type="wall", quantity=100, coats=0, primer=True),
    ])
    doc = assemble_quote([room], catalog, DEFAULT_DISPLAY_CONFIG)
    assert [(i.description, i.amount) for i in doc.line_items] == [("Prime Walls", 50.00)]


def test_supply_rules_add_to_itemized_quote(bedroom, catalog):
    config = QuoteDisplayConfigBuilder().separated().materials("itemized_volume").build()
    doc = assemble_quote([bedroom], catalog, config, supply_rules=DEFAULT_SUPPLY_RULES)
    # labor 1200 + 3 gal paint 135 + brushes, frame, 2 covers, tray, spackle 60.95
    assert doc.sections[0].subtotal == 60.95
    assert doc.subtotal == 1395.95
    assert _line_sum(doc) == doc.subtotal


def test_supply_rules_ignored_without_itemized_materials(bedroom, catalog):
    for config in (DEFAULT_DISPLAY_CONFIG,
                   QuoteDisplayConfigBuilder().separated().materials("allowance").build()):
        doc = assemble_quote([bedroom], catalog, config, supply_rules=DEFAULT_SUPPLY_RULES)
        assert all(s.key != "setup" for s in doc.sections)
