import threading

from library_api.extensions import db
from library_api.models.system_config import SystemConfig


def _set(client, headers, flag):
    return client.post("/admin/system-config/maintenance", json={"maintenance_mode": flag}, headers=headers)


def test_maintenance_mode_blocks_api(client, admin_headers, make_book):
    make_book()
    assert client.get("/books/").status_code == 200

    resp = _set(client, admin_headers, True)
    assert resp.status_code == 200
    assert resp.get_json()["data"]["maintenance_mode"] is True

    resp = client.get("/books/")
    assert resp.status_code == 503
    assert resp.get_json()["error"] == "MAINTENANCE_MODE"
    assert client.get("/health").status_code == 200
    assert client.get("/admin/system-config/", headers=admin_headers).get_json()["data"]["maintenance_mode"] is True

    _set(client, admin_headers, False)
    assert client.get("/books/").status_code == 200


def test_only_admin_can_switch(client, make_account, auth_headers):
    headers = auth_headers(make_account())
    assert _set(client, headers, True).status_code == 403


def test_flag_must_be_boolean(client, admin_headers):
    resp = _set(client, admin_headers, "yes")
    assert resp.status_code == 400


def test_concurrent_first_requests_share_one_config_row(app):
    with app.app_context():
        SystemConfig.query.delete()
        db.session.commit()

    n = 8
    barrier = threading.Barrier(n)
    statuses = []
    guard = threading.Lock()

    def worker():
        client = app.test_client()
        barrier.wait()
        status = client.get("/books/").status_code
        with guard:
            statuses.append(status)

    threads = [threading.Thread(target=worker) for _ in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert statuses == [200] * n
    with app.app_context():
        assert SystemConfig.query.count() == 1
