def add_expense(client, seed, amount, member_names, splits=None, title="Lunch"):
    body = {
        "groupId": seed["group"],
        "title": title,
        "amount": amount,
        "memberIds": [seed[n] for n in member_names],
    }
    if splits is not None:
        body["splits"] = [{"userId": seed[n], "amount": a} for n, a in splits]
    return client.post("/expenses", json=body)


def balances_by_name(payload):
    return {b["username"]: b["netBalance"] for b in payload["balances"]}


def test_ping(client):
    assert client.get("/ping").json()["status"] == "healthy"


def test_create_group_makes_creator_owner(client, seed):
    resp = client.post("/groups", json={"name": " Flat ", "description": "rent"})
    assert resp.status_code == 201
    body = resp.json()
    assert body["name"] == "Flat"
    assert body["currency"] == "USD"
    assert body["members"] == [{"userId": seed["alice"], "username": "alice", "role": "owner"}]


def test_add_member_by_email_and_username(client, seed):
    resp = client.post(f"/groups/{seed['group']}/members", json={"email": "dave@example.com"})
    assert resp.status_code == 201
    assert resp.json()["username"] == "dave"

    resp = client.post(f"/groups/{seed['group']}/members", json={"username": "erin"})
    assert resp.status_code == 201

    members = client.get(f"/groups/{seed['group']}").json()["members"]
    assert [m["username"] for m in members] == ["alice", "bob", "carol", "dave", "erin"]


def test_create_expense_equal_split(client, seed):
    resp = add_expense(client, seed, 90, ["alice", "bob", "carol"])
    assert resp.status_code == 201
    body = resp.json()
    assert body["paidBy"] == seed["alice"]
    assert body["amount"] == "90.00"
    assert [s["shareAmount"] for s in body["shares"]] == ["30.00", "30.00", "30.00"]


def test_create_expense_rejections(client, seed):
    assert add_expense(client, seed, 0, ["alice"]).status_code == 400
    assert add_expense(client, seed, 10, []).status_code == 400
    assert add_expense(client, seed, 10, ["alice", "dave"]).status_code == 400

    resp = add_expense(client, seed, 100, ["alice", "bob"], splits=[("alice", "50.00"), ("bob", "49.50")])
    assert resp.status_code == 400
    assert "Sum of splits" in resp.json()["detail"]

    assert client.get(f"/expenses/group/{seed['group']}").json() == []


def test_custom_split_within_tolerance(client, seed):
    resp = add_expense(client, seed, "100.00", ["alice", "bob"], splits=[("alice", "50.00"), ("bob", "49.995")])
    assert resp.status_code == 201
    assert {s["userId"]: s["shareAmount"] for s in resp.json()["shares"]} == {
        seed["alice"]: "50.00", seed["bob"]: "50.00",
    }


def test_non_member_cannot_see_group(client, seed, login):
    login("dave")
    assert client.get(f"/balances/group/{seed['group']}").status_code == 403
    assert client.get("/balances/group/999").status_code == 404


def test_group_balances_and_summary(client, seed, login):
    add_expense(client, seed, 90, ["alice", "bob", "carol"])
    login("bob")
    add_expense(client, seed, 30, ["bob", "carol"], title="Taxi")

    resp = client.get(f"/balances/group/{seed['group']}")
    assert resp.status_code == 200
    body = resp.json()

    assert balances_by_name(body) == {"alice": "60.00", "bob": "-15.00", "carol": "-45.00"}
    summary = body["summary"]
    assert summary["isBalanced"] is True
    assert summary["totalExpenses"] == summary["totalPaid"] == "120.00"
    assert [c["username"] for c in summary["creditors"]] == ["alice"]
    assert [d["username"] for d in summary["debtors"]] == ["carol", "bob"]
    assert [(t["fromUsername"], t["toUsername"], t["amount"]) for t in body["settlements"]] == [
        ("carol", "alice", "45.00"), ("bob", "alice", "15.00"),
    ]


def test_payment_settles_debt(client, seed, login):
    add_expense(client, seed, 100, ["alice", "bob"])
    client.get(f"/balances/group/{seed['group']}")

    login("bob")
    resp = client.post("/payments", json={"groupId": seed["group"], "payeeId": seed["alice"], "amount": 50, "notes": "cash"})
    assert resp.status_code == 201
    assert resp.json()["message"] == "Payment recorded successfully"

    assert client.get("/balances/summary").json() == {"totalOwedToYou": "0.00", "totalOwed": "0.00", "netBalance": "0.00"}

    body = client.get(f"/balances/group/{seed['group']}").json()
    assert balances_by_name(body) == {"alice": "0.00", "bob": "0.00", "carol": "0.00"}
    assert body["summary"]["creditors"] == [] and body["summary"]["debtors"] == []

    history = client.get("/payments", params={"group_id": seed["group"]}).json()
    assert [(p["payerName"], p["payeeName"], p["amount"], p["notes"]) for p in history] == [("bob", "alice", "50.00", "cash")]


def test_payment_rejections(client, seed):
    gid = seed["group"]
    assert client.post("/payments", json={"groupId": gid, "payeeId": seed["alice"], "amount": 5}).status_code == 400
    assert client.post("/payments", json={"groupId": gid, "payeeId": seed["bob"], "amount": 0}).status_code == 400
    assert client.post("/payments", json={"groupId": gid, "payeeId": seed["dave"], "amount": 5}).status_code == 400
    assert client.get("/payments", params={"group_id": gid}).json() == []


def test_balance_summary_across_groups(client, seed):
    add_expense(client, seed, 30, ["alice", "bob", "carol"])
    body = client.get("/balances/summary").json()
    assert body == {"totalOwedToYou": "20.00", "totalOwed": "0.00", "netBalance": "20.00"}


def test_user_balance_in_group(client, seed):
    add_expense(client, seed, 30, ["alice", "bob", "carol"])
    add_expense(client, seed, 10, ["bob"], title="Coffee")

    resp = client.get(f"/balances/group/{seed['group']}/user/{seed['bob']}")
    assert resp.status_code == 200
    body = resp.json()
    assert [e["title"] for e in body["expenses"]] == ["Coffee", "Lunch"]
    assert body["balance"] == {"totalPaid": "0.00", "totalOwed": "20.00", "netBalance": "-20.00"}

    assert client.get(f"/balances/group/{seed['group']}/user/{seed['dave']}").status_code == 404


def test_update_and_delete_expense(client, seed, login):
    expense = add_expense(client, seed, 60, ["alice", "bob", "carol"]).json()

    login("bob")
    assert client.put(f"/expenses/{expense['id']}", json={"amount": 30, "memberIds": [seed["bob"]]}).status_code == 403

    login("alice")
    resp = client.put(f"/expenses/{expense['id']}", json={"amount": 30, "memberIds": [seed["alice"], seed["bob"]]})
    assert resp.status_code == 200
    assert resp.json()["title"] == "Lunch"
    assert [s["shareAmount"] for s in resp.json()["shares"]] == ["15.00", "15.00"]
    assert balances_by_name(client.get(f"/balances/group/{seed['group']}").json())["bob"] == "-15.00"

    assert client.delete(f"/expenses/{expense['id']}").json() == {"message": "Expense deleted successfully"}
    assert client.get(f"/expenses/{expense['id']}").status_code == 404
    assert balances_by_name(client.get(f"/balances/group/{seed['group']}").json())["bob"] == "0.00"


def test_user_balance_matches_group_view_after_payment(client, seed, login):
    add_expense(client, seed, "100.00", ["alice", "bob"])
    login("bob")
    client.post("/payments", json={"groupId": seed["group"], "payeeId": seed["alice"], "amount": 50})

    group_view = balances_by_name(client.get(f"/balances/group/{seed['group']}").json())
    user_view = client.get(f"/balances/group/{seed['group']}/user/{seed['bob']}").json()["balance"]

    assert group_view["bob"] == user_view["netBalance"] == "0.00"
    assert user_view == {"totalPaid": "0.00", "totalOwed": "50.00", "netBalance": "0.00"}


def test_list_groups_with_counts_and_unpaid_flag(client, seed, login):
    client.post("/groups", json={"name": "Flat"})
    add_expense(client, seed, 30, ["alice", "bob", "carol"])

    groups = client.get("/groups").json()
    assert [g["name"] for g in groups] == ["Flat", "Trip"]
    flat, trip = groups
    assert (flat["memberCount"], flat["expenseCount"], flat["hasUnpaidBalance"]) == (1, 0, False)
    assert (trip["memberCount"], trip["expenseCount"], trip["hasUnpaidBalance"]) == (3, 1, True)
    assert trip["role"] == "owner" and trip["createdByUsername"] == "alice"

    login("dave")
    assert client.get("/groups").json() == []


def test_remove_member_who_paid(client, seed, login):
    login("bob")
    add_expense(client, seed, 60, ["alice", "bob", "carol"])

    login("alice")
    resp = client.delete(f"/groups/{seed['group']}/members/{seed['bob']}")
    assert resp.json() == {"message": "Member removed successfully"}

    resp = client.get(f"/balances/group/{seed['group']}")
    assert resp.status_code == 200
    body = resp.json()
    assert balances_by_name(body) == {"alice": "-20.00", "carol": "-20.00"}
    assert body["summary"]["totalPaid"] == "0.00"
    assert [m["username"] for m in client.get(f"/groups/{seed['group']}").json()["members"]] == ["alice", "carol"]


def test_remove_member_rejections(client, seed, login):
    gid = seed["group"]
    assert client.delete(f"/groups/{gid}/members/{seed['alice']}").status_code == 400
    assert client.delete(f"/groups/{gid}/members/{seed['dave']}").status_code == 404
    assert client.delete(f"/groups/999/members/{seed['bob']}").status_code == 404

    login("bob")
    assert client.delete(f"/groups/{gid}/members/{seed['carol']}").status_code == 403


def test_update_member_role(client, seed, login):
    gid = seed["group"]
    assert client.patch(f"/groups/{gid}/members/{seed['bob']}/role", json={"role": "boss"}).status_code == 400
    assert client.patch(f"/groups/{gid}/members/{seed['dave']}/role", json={"role": "admin"}).status_code == 404

    login("carol")
    assert client.patch(f"/groups/{gid}/members/{seed['bob']}/role", json={"role": "admin"}).status_code == 403

    login("alice")
    resp = client.patch(f"/groups/{gid}/members/{seed['bob']}/role", json={"role": "admin"})
    assert resp.json() == {"message": "Role updated successfully"}

    login("bob")
    assert client.delete(f"/groups/{gid}/members/{seed['carol']}").status_code == 200


def test_recent_expenses_across_groups(client, seed, login):
    other = client.post("/groups", json={"name": "Flat"}).json()["id"]
    for i in range(11):
        add_expense(client, seed, 10, ["alice", "bob"], title=f"Lunch {i}")
    client.post("/expenses", json={"groupId": other, "title": "Rent", "amount": 500, "memberIds": [seed["alice"]]})

    recent = client.get("/expenses/recent").json()
    assert len(recent) == 10
    assert (recent[0]["title"], recent[0]["groupName"], recent[0]["paidByUsername"]) == ("Rent", "Flat", "alice")
    assert recent[1]["title"] == "Lunch 10"

    login("bob")
    assert [e["groupName"] for e in client.get("/expenses/recent").json()] == ["Trip"] * 10
