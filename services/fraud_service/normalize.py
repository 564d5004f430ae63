"""
Normalises fraud-check responses into one snapshot shape:

    {phone, total_parcels, successful_deliveries, failed_deliveries,
     success_rate, fraud_risk, courier_history}

Three upstream shapes are accepted: the wrapped per-courier response
({success, data: {total_parcel, response, score, ...}}), a wrapped payload
that is already normalised ({success, data: {total_parcels, ...}}) and the
legacy {status: "success", courierData: {summary, <courier>: {...}}} shape.
"""
COURIER_NAMES = {"steadfast": "Steadfast", "pathao": "Pathao", "redx": "RedX"}


def success_rate(successful: int, total: int) -> int:
    return round(successful / total * 100) if total > 0 else 0


def risk_from_score(value: float) -> str:
    if value >= 90:
        return "low"
    if value >= 70:
        return "medium"
    if value > 0:
        return "high"
    return "unknown"


def from_courier_response(data: dict) -> dict:
    total = data.get("total_parcel") or 0
    successful = data.get("success_parcel") or 0
    rate = success_rate(successful, total)
    score = data.get("score")

    history = []
    for key, label in COURIER_NAMES.items():
        courier = ((data.get("response") or {}).get(key) or {}).get("data")
        if not courier:
            continue
        history.append({
            "courier": label,
            "total": courier.get("total", 0),
            "successful": courier.get("success", 0),
            "failed": courier.get("cancel", 0),
            "success_rate": success_rate(courier.get("success", 0), courier.get("total", 0)),
        })

    return {
        "phone": data.get("phone"),
        "total_parcels": total,
        "successful_deliveries": successful,
        "failed_deliveries": data.get("cancel_parcel") or 0,
        "success_rate": rate,
        "fraud_risk": risk_from_score(score if score is not None else rate),
        "courier_history": history or None,
    }


def from_legacy(body: dict, phone: str) -> dict:
    courier_data = body["courierData"]
    summary = courier_data.get("summary") or {}
    rate = summary.get("success_ratio") or 0
    # legacy responses never report "unknown"
    risk = "low" if rate >= 90 else "medium" if rate >= 70 else "high"

    history = []
    for key, item in courier_data.items():
        if key == "summary" or not isinstance(item, dict):
            continue
        if "name" in item and "logo" in item and (item.get("total_parcel") or 0) > 0:
            history.append({
                "courier": item["name"],
                "total": item["total_parcel"],
                "successful": item.get("success_parcel", 0),
                "failed": item.get("cancelled_parcel", 0),
                "success_rate": item.get("success_ratio"),
                "logo": item["logo"],
            })

    return {
        "phone": phone,
        "total_parcels": summary.get("total_parcel", 0),
        "successful_deliveries": summary.get("success_parcel", 0),
        "failed_deliveries": summary.get("cancelled_parcel", 0),
        "success_rate": rate,
        "fraud_risk": risk,
        "courier_history": history,
    }


def normalize_fraud_response(body: dict, phone: str, checked_at: str) -> dict | None:
    """Returns the snapshot to store on the order, or None for unrecognised shapes."""
    snapshot = None
    data = body.get("data")
    if body.get("success") and isinstance(data, dict):
        if "total_parcel" in data and "response" in data:
            snapshot = from_courier_response(data)
        elif "total_parcels" in data:
            snapshot = dict(data)
    elif body.get("status") == "success" and isinstance(body.get("courierData"), dict):
        snapshot = from_legacy(body, phone)

    if snapshot is None:
        return None
    snapshot["checked_at"] = checked_at
    return snapshot
