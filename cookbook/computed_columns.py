import json

from cdcrow.core import DataType, SourceBuilder


def main():
    documents = [
        {"_id": {"$oid": "a1"}, "sku": " ab-100 ", "amount": "1234.56", "created_at": {"$date": 1719837296000}},
        {"_id": {"$oid": "b2"}, "sku": "cd-200", "amount": "87", "created_at": "2023-12-31T23:59:59Z"},
        {"_id": {"$oid": "c3"}, "sku": "ef-300", "amount": "n/a"},
    ]

    extractor = (
        SourceBuilder()
        .dynamic()
        .computed("sku", "sku").trim().end()
        .computed("amount_bucket", "amount").truncate(100).end()
        .computed("amount_num", "amount").cast("float").end()
        .computed("order_day", "created_at").date_format("%Y-%m-%d").end()
        .computed("order_month", "created_at").month().end()
        .computed("created_ts", "created_at").date_format("%Y-%m-%dT%H:%M:%S").as_type(DataType.TIMESTAMP).end()
        .computed("channel", "_id").const("web").end()
        .to_extractor()
    )

    rows = extractor.extract_rows(json.dumps(d) for d in documents)
    for row in rows:
        print(row)

    df = extractor.to_dataframe(rows)
    print(df.dtypes)
    print(df.to_string(index=True))


if __name__ == "__main__":
    main()
