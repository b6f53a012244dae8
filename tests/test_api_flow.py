import base64
from decimal import Decimal

from config import ADMIN_USERNAME, ADMIN_PASSWORD

# Вспомогательная функция для Basic Auth заголовка
def basic_auth(username=ADMIN_USERNAME, password=ADMIN_PASSWORD):
    token = base64.b64encode(f"{username}:{password}".encode('utf-8')).decode("ascii")
    return {"Authorization": f"Basic {token}"}


def test_requires_basic_auth(client):
    assert client.get("/api/v1/services").status_code == 401
    response = client.get("/api/v1/services", headers=basic_auth("admin", "wrong"))
    assert response.status_code == 401
    assert client.get("/").json() == {"message": "Salon Agenda API is running"}


def test_full_flow(client):
    auth = basic_auth()

    # 1. Каталог: две услуги
    response = client.post("/api/v1/services", json={"name": "Corte", "price": 80, "duration_minutes": 60}, headers=auth)
    assert response.status_code == 200
    corte_id = response.json()["id"]
    response = client.post("/api/v1/services", json={"name": "Escova", "price": "45.50"}, headers=auth)
    escova_id = response.json()["id"]
    assert response.json()["duration_minutes"] is None

    # 2. Клиент через быстрое добавление (только имя)
    response = client.post("/api/v1/clients", json={"name": "  Carla  "}, headers=auth)
    assert response.status_code == 200
    client_id = response.json()["id"]
    assert response.json()["name"] == "Carla"

    # 3. Запись без даты - 422 со списком полей
    response = client.post("/api/v1/appointments", json={"client_id": client_id, "service_ids": [corte_id]}, headers=auth)
    assert response.status_code == 422
    assert response.json()["detail"]["fields"] == ["date", "start_time"]

    # 4. Еженедельная серия: пн + ср, две недели
    booking = {
        "client_id": client_id,
        "service_ids": [corte_id, escova_id],
        "date": "2024-03-04",
        "start_time": "09:00",
        "custom_prices": {str(escova_id): "40.00"},
        "recurrence": "weekly",
        "recurrence_days": ["monday", "wednesday"],
        "recurrence_count": 2,
    }
    response = client.post("/api/v1/appointments", json=booking, headers=auth)
    assert response.status_code == 200
    series = response.json()
    assert [a["start_time"] for a in series] == [
        "2024-03-04T09:00:00", "2024-03-06T09:00:00", "2024-03-11T09:00:00", "2024-03-13T09:00:00",
    ]
    assert series[0]["is_parent"] is True
    assert all(Decimal(a["final_price"]) == Decimal("120") for a in series)
    assert {line["service_name"] for line in series[0]["lines"]} == {"Corte", "Escova"}
    parent_id, second_id, third_id, fourth_id = [a["id"] for a in series]

    # 5. Завершили одну запись через быстрый статус
    response = client.patch(f"/api/v1/appointments/{second_id}/status", json={"status": "completed"}, headers=auth)
    assert response.status_code == 200
    assert response.json()["payment_status"] == "paid"

    # 6. Две записи ждут оплаты
    for appointment_id in (third_id, fourth_id):
        response = client.patch(f"/api/v1/appointments/{appointment_id}/status",
                                json={"payment_status": "pending"}, headers=auth)
        assert response.json()["status"] == "pending_payment"

    response = client.get("/api/v1/payments/pending", headers=auth)
    groups = response.json()
    assert len(groups) == 1
    assert groups[0]["client_name"] == "Carla"
    assert groups[0]["count"] == 2
    assert Decimal(groups[0]["total_due"]) == Decimal("240")

    # 7. Пакетная оплата: одна из трех не существует
    response = client.post("/api/v1/payments/settle",
                           json={"appointment_ids": [third_id, 9999, fourth_id], "method": "pix"}, headers=auth)
    assert response.status_code == 200
    summary = response.json()
    assert summary["succeeded"] == [third_id, fourth_id]
    assert [f["id"] for f in summary["failed"]] == [9999]
    assert summary["partial"] is True

    response = client.get("/api/v1/payments/stats", headers=auth)
    stats = response.json()
    assert stats["paid_count"] == 3
    assert stats["pending_count"] == 0
    assert Decimal(stats["paid_total"]) == Decimal("360")

    # 8. Смена цены снова открывает оплату
    response = client.patch(f"/api/v1/payments/{fourth_id}/price",
                            json={"new_price": "50", "service_id": escova_id}, headers=auth)
    assert response.status_code == 200
    assert response.json()["payment_status"] == "pending"
    assert Decimal(response.json()["final_price"]) == Decimal("130")

    # 9. Удаление будущих: оплаченные остаются
    response = client.get(f"/api/v1/appointments/{parent_id}/series-deletion", headers=auth)
    assert response.json() == {"parent_id": parent_id, "total": 4, "future_deletable": 2, "settled": 2}

    response = client.delete(f"/api/v1/appointments/{fourth_id}?scope=future", headers=auth)
    assert response.status_code == 200
    deletion = response.json()
    assert sorted(deletion["deleted_ids"]) == sorted([parent_id, fourth_id])
    assert sorted(deletion["skipped_ids"]) == sorted([second_id, third_id])
    assert deletion["new_parent_id"] == second_id

    # 10. История клиента и нельзя удалить клиента с записями
    response = client.get(f"/api/v1/clients/{client_id}/history?tab=paid", headers=auth)
    history = response.json()
    assert [a["id"] for a in history["appointments"]] == [third_id, second_id]
    assert history["statistics"]["completed_appointments"] == 2
    assert Decimal(history["statistics"]["total_spent"]) == Decimal("240")

    response = client.delete(f"/api/v1/clients/{client_id}", headers=auth)
    assert response.status_code == 409

    # 11. Удаление всей серии с предупреждением
    response = client.delete(f"/api/v1/appointments/{third_id}?scope=all", headers=auth)
    assert response.status_code == 200
    assert response.json()["settled_count"] == 2
    assert response.json()["warning"]

    response = client.get(f"/api/v1/appointments/{third_id}", headers=auth)
    assert response.status_code == 404
    assert client.delete(f"/api/v1/clients/{client_id}", headers=auth).status_code == 200


def test_single_appointment_edit_and_payment_form(client):
    auth = basic_auth()
    service_id = client.post("/api/v1/services", json={"name": "Manicure", "price": 35}, headers=auth).json()["id"]
    client_id = client.post("/api/v1/clients", json={"name": "Dora", "phone": "21 98888-7777"}, headers=auth).json()["id"]

    booking = {"client_id": client_id, "service_ids": [service_id], "date": "2024-03-02", "start_time": "15:00"}
    (appointment,) = client.post("/api/v1/appointments", json=booking, headers=auth).json()
    assert appointment["end_time"] == "2024-03-02T15:30:00"
    assert appointment["recurrence_group_id"] is None

    response = client.put(f"/api/v1/appointments/{appointment['id']}",
                          json={**booking, "start_time": "16:00", "payment_status": "undefined"}, headers=auth)
    assert response.status_code == 200
    assert response.json()["start_time"] == "2024-03-02T16:00:00"

    response = client.put(f"/api/v1/payments/{appointment['id']}",
                          json={"status": "completed", "payment_status": "undefined", "final_price": "30"}, headers=auth)
    assert response.status_code == 200
    assert response.json()["payment_status"] == "paid"

    response = client.put(f"/api/v1/payments/{appointment['id']}",
                          json={"status": "completed", "payment_status": "paid", "final_price": "-3"}, headers=auth)
    assert response.status_code == 422

    response = client.get("/api/v1/dashboard?day=2024-03-02", headers=auth)
    dashboard = response.json()
    assert len(dashboard["appointments"]) == 1
    assert dashboard["status_counts"]["completed"] == 1

    response = client.post("/api/v1/recurrence/preview", headers=auth, json={
        "base_date": "2024-03-04T09:00:00", "recurrence": "weekly",
        "weekdays": ["wednesday", "friday"], "occurrence_count": 2,
    })
    assert response.json() == [
        "2024-03-06T09:00:00", "2024-03-08T09:00:00", "2024-03-13T09:00:00", "2024-03-15T09:00:00",
    ]

    response = client.delete("/api/v1/appointments/9999", headers=auth)
    assert response.status_code == 404
