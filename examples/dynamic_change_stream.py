import json

from cdcrow.core import DuplicateColumnError, RowExtractor, extract_records


def event(op, oid, fields=None):
    ev = {"operationType": op, "ns": {"db": "shop", "coll": "orders"}}
    if op == "delete":
        ev["documentKey"] = json.dumps({"_id": {"$oid": oid}})
    else:
        ev["fullDocument"] = json.dumps({"_id": {"$oid": oid}, **(fields or {})})
    return {"payload": ev}


def main():
    stream = [
        event("insert", "a1", {"Status": "new", "total": 10}),
        event("update", "a1", {"Status": "paid", "total": 10, "paidAt": "2024-07-02T08:00:00Z"}),
        event("insert", "b2", {"Status": "new", "status": "dup"}),
        event("delete", "a1"),
    ]

    extractor = RowExtractor({"mode": "dynamic", "case-sensitive": "false"})

    rows = []
    for ev in stream:
        try:
            records = extract_records(ev, extractor)
        except DuplicateColumnError as e:
            print(f"rejected: {e}")
            continue

        for record in records:
            print(record.kind.value, f"{record.database}.{record.table}", record.row)
            rows.append(record.row)

    print(extractor.field_types)
    print(extractor.to_dataframe(rows).to_string(index=True))


if __name__ == "__main__":
    main()
