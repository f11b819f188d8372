from payouts.extensions import db
from payouts.models import AuditLog, PayoutRun


def computed_run(client, month):
    res = client.post(f"/api/payout-runs/compute?month_id={month.id}")
    assert res.status_code == 200
    return res.get_json()["run"]["id"]


def test_get_run_returns_lines(login, finance, month, make_member, add_basis):
    anna = make_member("Anna", department="chatting")
    add_basis(anna, month, "webapp", 1000)
    client = login(finance)
    run_id = computed_run(client, month)

    res = client.get(f"/api/payout-runs/{run_id}")

    assert res.status_code == 200
    body = res.get_json()
    assert body["run"] == {"id": run_id, "month_id": month.id, "month_key": "2024-07", "status": "draft", "notes": ""}
    (line,) = body["lines"]
    assert line["team_member_name"] == "Anna"
    assert line["department"] == "chatting"
    assert line["amount_eur"] == 100.0
    assert line["run_status"] == "draft"


def test_get_run_readable_by_viewer(login, viewer, month):
    run = PayoutRun(month_id=month.id, status="draft", notes="")
    db.session.add(run)
    db.session.commit()

    res = login(viewer).get(f"/api/payout-runs/{run.id}")
    assert res.status_code == 200
    assert res.get_json()["lines"] == []


def test_get_unknown_run(login, finance):
    assert login(finance).get("/api/payout-runs/9999").status_code == 404


def test_finalize_through_api_blocks_recompute(login, finance, month, make_member):
    make_member()
    client = login(finance)
    run_id = computed_run(client, month)

    res = client.patch(f"/api/payout-runs/{run_id}", json={"status": "finalized", "notes": "paid out"})

    assert res.status_code == 200
    body = res.get_json()
    assert body["run"]["status"] == "finalized"
    assert body["run"]["notes"] == "paid out"
    assert sorted(body["changed"]) == ["notes", "status"]
    entry = AuditLog.query.filter_by(table_name="payout_runs", field_name="status").one()
    assert (entry.old_value, entry.new_value, entry.user_email) == ("draft", "finalized", finance.email)

    again = client.post(f"/api/payout-runs/compute?month_id={month.id}")
    assert again.status_code == 409


def test_unchanged_patch_writes_no_audit(login, finance, month):
    client = login(finance)
    run_id = computed_run(client, month)
    before = AuditLog.query.count()

    res = client.patch(f"/api/payout-runs/{run_id}", json={"status": "draft", "notes": ""})

    assert res.status_code == 200
    assert res.get_json()["changed"] == []
    assert AuditLog.query.count() == before


def test_only_admin_reopens_finalized_run(client, admin, finance, month):
    client.post("/auth/login", json={"email": finance.email, "password": "pass"})
    run_id = computed_run(client, month)
    client.patch(f"/api/payout-runs/{run_id}", json={"status": "finalized"})

    assert client.patch(f"/api/payout-runs/{run_id}", json={"status": "draft"}).status_code == 409

    client.post("/auth/logout")
    client.post("/auth/login", json={"email": admin.email, "password": "pass"})
    res = client.patch(f"/api/payout-runs/{run_id}", json={"status": "draft"})
    assert res.status_code == 200
    assert res.get_json()["run"]["status"] == "draft"
    assert client.post(f"/api/payout-runs/compute?month_id={month.id}").status_code == 200


def test_patch_run_validation(login, finance, month):
    client = login(finance)
    run_id = computed_run(client, month)

    assert client.patch(f"/api/payout-runs/{run_id}", json={"status": "paid"}).status_code == 400
    assert client.patch(f"/api/payout-runs/{run_id}", json={"notes": 5}).status_code == 400
    assert client.patch(f"/api/payout-runs/{run_id}", json={}).status_code == 400
    assert client.patch(f"/api/payout-runs/{run_id}", data="x", content_type="application/json").status_code == 400
    assert client.patch("/api/payout-runs/9999", json={"status": "finalized"}).status_code == 404
