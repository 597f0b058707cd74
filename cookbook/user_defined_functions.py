import json

from cdcrow.core import ComputedColumn, RowExtractor, Rule, register_udf


def main():
    document = json.dumps({
        "_id": {"$oid": "64b7f0c2e4b0a1a2b3c4d5e6"},
        "email": "ada@example.com",
        "city": " berlin ",
        "country_code": "DE",
    })

    def mask(value, keep):
        if value is None:
            return None
        keep = int(keep)
        return value[:keep] + "*" * max(len(value) - keep, 0)

    def norm_city(name, country):
        return f"{name.strip().title()} ({country})" if name else None

    register_udf("mask", mask)
    register_udf("norm_city", norm_city)

    extractor = RowExtractor(
        {"computed-columns": "email_masked=mask(email,3)"},
        [ComputedColumn.of("city_norm", "city", Rule().udf("norm_city", "DE"))],
    )

    row = extractor.extract_row(document)
    print(row)
    print(extractor.to_dataframe([row]).to_string(index=True))


if __name__ == "__main__":
    main()
