import json

from cdcrow.core import RowExtractor

document = json.dumps({
    "_id": {"$oid": "64b7f0c2e4b0a1a2b3c4d5e6"},
    "customer": {"name": "Ada", "tier": "gold", "emails": [{"type": "work", "value": "ada@company.com"}]},
    "items": [
        {"sku": "A-1", "price": 3.5, "qty": 2},
        {"sku": "B-7", "price": 10, "qty": 1},
    ],
    "created_at": "2024-07-01T12:34:56Z",
})

options = {
    "mode": "specified",
    "field-paths": '$._id,$.customer.name,$.customer.emails[?type=="work"]?[0].value,$.items[*].sku,$.created_at,$.coupon',
    "field-names": "order_id,customer,work_email,skus,created_at,coupon",
    "computed-columns": "order_year=year(created_at)",
}

extractor = RowExtractor(options)
row = extractor.extract_row(document)

print(row)
print(extractor.field_types)
print(extractor.to_dataframe([row]))
