import json
import logging
import sys

from cdcrow.core import ExtractorConfig, RowExtractor
from cdcrow.core.io import jsonl_to_csv, jsonl_to_parquet
from cdcrow.validation import validate_with_warnings

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def main(in_path: str, out_path: str):
    options = {"mode": "dynamic", "case-sensitive": "false", "computed-columns": "order_year=year(created_at)"}

    report = validate_with_warnings(options)
    print(json.dumps(report, indent=2))
    if not report["ok"]:
        sys.exit(1)

    counts = {}
    config = ExtractorConfig(metrics_increment=lambda name, n: counts.__setitem__(name, counts.get(name, 0) + n))
    extractor = RowExtractor(options, config=config)

    if out_path.endswith(".csv"):
        jsonl_to_csv(extractor, in_path, out_path, skip_errors=True)
    else:
        jsonl_to_parquet(extractor, in_path, out_path, skip_errors=True)

    print(counts)
    print({name: t.value for name, t in extractor.field_types.items()})


if __name__ == "__main__":
    main(sys.argv[1], sys.argv[2])
