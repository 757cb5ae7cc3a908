"""
API integration: catalog, project codes, quotations, price check.
"""

from datetime import date

from cotizador import models
from cotizador.repository import CatalogRepository, CodeRepository
from cotizador.schemas import ProjectCode


def _material_id(db, name):
    return db.query(models.Material).filter(models.Material.name == name).first().id


def _furniture_id(db, name):
    return db.query(models.Furniture).filter(models.Furniture.name == name).first().id


def _quotation_body(db, **overrides):
    body = {
        "client_name": "Familia Pérez",
        "project_type": "Residencial",
        "quote_date": "2025-05-14",
        "selections": {
            "mat_huacal": _material_id(db, "MDF 16mm Blanco"),
            "mat_vista": _material_id(db, "Melamina 16mm Nogal"),
            "bisagras": "none",
        },
        "items": [
            {"furniture_id": _furniture_id(db, "Vestidor completo"), "area": "CL", "furniture_type": "ALC"},
        ],
    }
    body.update(overrides)
    return body


# ============================================================
# Smoke / catalog
# ============================================================

def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_seed_is_idempotent(client):
    first = client.get("/api/catalog/seed").json()
    assert first["seeded"]["materials"] > 0
    second = client.get("/api/catalog/seed").json()
    assert second["seeded"] == {"materials": 0, "accessories": 0, "furniture": 0}


def test_list_materials_by_kind(client, seeded_db):
    resp = client.get("/api/catalog/materials", params={"kind": "Tablero"})
    assert resp.status_code == 200
    kinds = {m["kind"] for m in resp.json()}
    assert kinds == {"Tablero"}


def test_update_material_cost(client, seeded_db):
    material_id = _material_id(seeded_db, "MDF 16mm Blanco")
    resp = client.patch(f"/api/catalog/materials/{material_id}", json={"unit_cost": 130.0})
    assert resp.status_code == 200
    assert resp.json()["unit_cost"] == 130.0
    assert client.patch("/api/catalog/materials/9999", json={"unit_cost": 1}).status_code == 404


def test_list_accessories_and_furniture(client, seeded_db):
    assert len(client.get("/api/catalog/accessories").json()) == 5
    furniture = client.get("/api/catalog/furniture").json()
    vestidor = next(f for f in furniture if f["name"] == "Vestidor completo")
    assert vestidor["bom"]["mat_huacal"] == 2.5


# ============================================================
# Repositories
# ============================================================

def test_catalog_repository(seeded_db):
    catalog = CatalogRepository(seeded_db)
    table = catalog.get_accessory_cost_table()
    assert [a.category for a in table][:2] == ["patas", "clips"]
    selections = catalog.get_selections({"mat_huacal": _material_id(seeded_db, "MDF 16mm Blanco"), "jaladera": None})
    assert selections["jaladera"] is None
    assert str(selections["mat_huacal"].unit_cost) == "120.0"


def test_catalog_repository_rejects_wrong_kind(seeded_db):
    catalog = CatalogRepository(seeded_db)
    bisagra_id = _material_id(seeded_db, "Bisagra estandar")
    try:
        catalog.get_selections({"mat_huacal": bisagra_id})
    except ValueError as e:
        assert "mat_huacal" in str(e)
    else:
        raise AssertionError("expected a slot/kind mismatch")


def test_code_repository_query_is_descending(db):
    codes = CodeRepository(db)
    for sequence in (1, 3, 2):
        codes.reserve(
            ProjectCode(type_prefix="RE", year=2025, month=5, sequence=sequence),
            project_type=models.ProjectType.RESIDENCIAL,
        )
    assert codes.query_codes_by_prefix("RE-505-") == ["RE-505-003", "RE-505-002", "RE-505-001"]
    assert codes.last_code("RE-505-") == ["RE-505-003"]
    assert codes.query_codes_by_prefix("RE-506-") == []


def test_code_repository_unique_bucket_sequence(db):
    codes = CodeRepository(db)
    codes.reserve(ProjectCode(type_prefix="WN", year=2025, month=5, sequence=1, prototype="B1"),
                  project_type=models.ProjectType.DESARROLLO)
    try:
        codes.reserve(ProjectCode(type_prefix="WN", year=2025, month=5, sequence=1, prototype="B2"),
                      project_type=models.ProjectType.DESARROLLO)
    except ValueError as e:
        assert "WN-505-001-B2" in str(e)
    else:
        raise AssertionError("expected an allocation conflict")


# ============================================================
# Project codes
# ============================================================

def test_preview_next_code(client):
    resp = client.get("/api/project-codes/next", params={"project_type": "1"})
    assert resp.status_code == 200
    data = resp.json()
    today = date.today()
    assert data["project_code"] == f"RE-{today.year % 10}{today.month:02d}-001"
    assert data["reserved"] is False


def test_preview_next_code_vertical(client):
    resp = client.get("/api/project-codes/next", params={
        "project_type": "Desarrollo", "vertical_project": "Wen", "prototype": "PH",
    })
    assert resp.status_code == 200
    assert resp.json()["project_code"].startswith("WN-")
    assert resp.json()["project_code"].endswith("-001-PH")


def test_preview_vertical_without_name_fails(client):
    resp = client.get("/api/project-codes/next", params={"project_type": "Desarrollo"})
    assert resp.status_code == 400
    assert "Vertical project name is required" in resp.json()["detail"]


def test_preview_rejects_unknown_type(client):
    resp = client.get("/api/project-codes/next", params={"project_type": "Comercial"})
    assert resp.status_code == 400


def test_parse_endpoint(client):
    resp = client.get("/api/project-codes/parse/RE-505-001")
    assert resp.status_code == 200
    assert resp.json() == {"type_prefix": "RE", "year": 2025, "month": 5, "sequence": 1, "prototype": None}

    resp = client.get("/api/project-codes/parse/RE-505-001-CL-ALC-A")
    assert resp.status_code == 200
    data = resp.json()
    assert data["area_name"] == "closet"
    assert data["production_type"] == "A"

    assert client.get("/api/project-codes/parse/RE-505").status_code == 400


def test_furniture_code_endpoint(client):
    resp = client.post("/api/project-codes/furniture", json={
        "project_code": "RE-505-001", "area": "CL", "furniture_type": "ALC", "production_type": "A",
    })
    assert resp.status_code == 200
    assert resp.json()["furniture_code"] == "RE-505-001-CL-ALC-A"

    bad = client.post("/api/project-codes/furniture", json={
        "project_code": "RE-505-001", "area": "ZZ", "furniture_type": "ALC",
    })
    assert bad.status_code == 400


# ============================================================
# Quotations
# ============================================================

def test_create_quotation_prices_and_codes(client, seeded_db):
    resp = client.post("/api/quotations/", json=_quotation_body(seeded_db))
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["project_code"] == "RE-505-001"
    assert data["year"] == 2025
    assert data["month"] == 5
    item = data["items"][0]
    # 2.5×120×1.8 + 1.2×150×1.8 + 4 patas × 10 × 1.8
    assert item["unit_price"] == "936.00"
    assert item["furniture_code"] == "RE-505-001-CL-ALC"
    assert item["production_type"] is None


def test_sequential_quotations_in_same_month(client, seeded_db):
    codes = [
        client.post("/api/quotations/", json=_quotation_body(seeded_db)).json()["project_code"]
        for _ in range(3)
    ]
    assert codes == ["RE-505-001", "RE-505-002", "RE-505-003"]
    other_month = client.post(
        "/api/quotations/", json=_quotation_body(seeded_db, quote_date="2025-06-01"),
    ).json()["project_code"]
    assert other_month == "RE-506-001"


def test_vertical_quotation(client, seeded_db):
    body = _quotation_body(seeded_db, project_type="3", vertical_project="Satory", prototype="B1")
    resp = client.post("/api/quotations/", json=body)
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["project_code"] == "SY-505-001-B1"
    assert data["items"][0]["furniture_code"] == "SY-505-001-B1-CL-ALC"
    # Desarrollo ×1.5: 450 + 270 + 60
    assert data["items"][0]["unit_price"] == "780.00"


def test_quotation_errors(client, seeded_db):
    missing_type = client.post("/api/quotations/", json=_quotation_body(seeded_db, project_type=""))
    assert missing_type.status_code == 400

    no_vertical = client.post("/api/quotations/", json=_quotation_body(seeded_db, project_type="Desarrollo"))
    assert no_vertical.status_code == 400

    bad_area = _quotation_body(seeded_db)
    bad_area["items"][0]["area"] = "QQ"
    assert client.post("/api/quotations/", json=bad_area).status_code == 400

    bad_material = _quotation_body(seeded_db, selections={"mat_huacal": 9999})
    assert client.post("/api/quotations/", json=bad_material).status_code == 400

    # Nothing was reserved by the failed requests
    assert seeded_db.query(models.Quotation).count() == 0


def test_full_bucket_returns_conflict(client, seeded_db):
    CodeRepository(seeded_db).reserve(
        ProjectCode(type_prefix="RE", year=2025, month=5, sequence=999),
        project_type=models.ProjectType.RESIDENCIAL,
    )
    resp = client.post("/api/quotations/", json=_quotation_body(seeded_db))
    assert resp.status_code == 409


def test_get_quotation(client, seeded_db):
    created = client.post("/api/quotations/", json=_quotation_body(seeded_db)).json()
    resp = client.get(f"/api/quotations/{created['id']}")
    assert resp.status_code == 200
    assert resp.json()["project_code"] == "RE-505-001"
    assert client.get("/api/quotations/9999").status_code == 404


def test_price_check_detects_catalog_drift(client, seeded_db):
    created = client.post("/api/quotations/", json=_quotation_body(seeded_db)).json()

    clean = client.get(f"/api/quotations/{created['id']}/price-check").json()
    assert clean["has_discrepancy"] is False

    material_id = _material_id(seeded_db, "MDF 16mm Blanco")
    client.patch(f"/api/catalog/materials/{material_id}", json={"unit_cost": 130.0})

    drift = client.get(f"/api/quotations/{created['id']}/price-check").json()
    assert drift["has_discrepancy"] is True
    item = drift["items"][0]
    assert item["stored"] == "936.00"
    assert item["calculated"] == "981.00"  # +2.5 × 10 × 1.8

    # Reporting only: the stored price is unchanged
    again = client.get(f"/api/quotations/{created['id']}").json()
    assert again["items"][0]["unit_price"] == "936.00"


def test_additional_order_reuses_project_code(client, seeded_db):
    created = client.post("/api/quotations/", json=_quotation_body(seeded_db)).json()
    resp = client.post(f"/api/quotations/{created['id']}/additional-order", json={
        "production_type": "G",
        "items": [{"furniture_id": _furniture_id(seeded_db, "Vestidor completo"),
                   "area": "VD", "furniture_type": "CAJ"}],
    })
    assert resp.status_code == 200, resp.text
    items = resp.json()["items"]
    assert [i["furniture_code"] for i in items] == ["RE-505-001-CL-ALC", "RE-505-001-VD-CAJ-G"]
    assert seeded_db.query(models.Quotation).count() == 1


def test_additional_order_rejects_unknown_production_type(client, seeded_db):
    created = client.post("/api/quotations/", json=_quotation_body(seeded_db)).json()
    resp = client.post(f"/api/quotations/{created['id']}/additional-order", json={
        "production_type": "X",
        "items": [{"furniture_id": _furniture_id(seeded_db, "Vestidor completo"),
                   "area": "VD", "furniture_type": "CAJ"}],
    })
    assert resp.status_code == 422


def test_quotation_totals_in_responses(client, seeded_db):
    body = _quotation_body(seeded_db)
    body["items"].append({
        "furniture_id": _furniture_id(seeded_db, "Vestidor completo"),
        "area": "VD", "furniture_type": "CLO", "quantity": 2, "discount": 10,
    })
    created = client.post("/api/quotations/", json=body).json()
    assert [i["subtotal"] for i in created["items"]] == ["936.00", "1684.80"]
    assert created["subtotal"] == "2620.80"
    assert created["tax_rate"] == "0.16"
    assert created["taxes"] == "419.33"
    assert created["total"] == "3040.13"

    fetched = client.get(f"/api/quotations/{created['id']}").json()
    assert fetched["total"] == "3040.13"


def test_quotation_rejects_out_of_range_discount(client, seeded_db):
    body = _quotation_body(seeded_db)
    body["items"][0]["discount"] = 150
    assert client.post("/api/quotations/", json=body).status_code == 422


def test_quotation_and_items_are_stored_together(client, seeded_db):
    created = client.post("/api/quotations/", json=_quotation_body(seeded_db)).json()
    items = seeded_db.query(models.QuotationItem).all()
    assert [i.quotation_id for i in items] == [created["id"]]
    assert items[0].furniture_code == "RE-505-001-CL-ALC"


def test_failed_item_build_leaves_code_unused(db):
    codes = CodeRepository(db)
    code = ProjectCode(type_prefix="RE", year=2025, month=5, sequence=1)

    def broken_items(project_code):
        raise ValueError("bad line")

    try:
        codes.reserve(code, build_items=broken_items, project_type=models.ProjectType.RESIDENCIAL)
    except ValueError:
        pass
    else:
        raise AssertionError("expected the item build to fail")
    db.rollback()
    assert codes.query_codes_by_prefix("RE-505-") == []
    assert db.query(models.QuotationItem).count() == 0

    codes.reserve(code, project_type=models.ProjectType.RESIDENCIAL)
    assert codes.query_codes_by_prefix("RE-505-") == ["RE-505-001"]
