"""
Stock Assessment — Command-line Entry Point

    python -m src.assessment request.json [--output result.json] [--log-level INFO]

Запрос проверяется контрактом assessment_request.json; результат
выводится (или сохраняется) по контракту assessment_result.json.
"""

import argparse
import json
import logging
import sys

from jsonschema import ValidationError as SchemaValidationError
from pydantic import ValidationError

from src.assessment.config import AssessmentRequest
from src.assessment.pipeline import run_assessment
from src.core.domain.errors import AssessmentError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m src.assessment",
        description="Age-structured stock assessment: ridge VPA, retrospective diagnostics, ABC",
    )
    parser.add_argument("request", help="Path to assessment request JSON")
    parser.add_argument(
        "--output", "-o", default=None, help="Path to write result JSON (default: stdout)"
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=args.log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    else:
        logging.getLogger().setLevel(args.log_level)

    with open(args.request, "r", encoding="utf-8") as f:
        payload = json.load(f)

    try:
        request = AssessmentRequest.from_dict(payload)
        result = run_assessment(request)
    except AssessmentError as e:
        logger.error("Assessment failed: %s", e)
        return 1
    except (SchemaValidationError, ValidationError, ValueError) as e:
        # pydantic ValidationError и ValueError из проверок входов стадий
        logger.error("Invalid assessment request: %s", e)
        return 2

    text = json.dumps(result.to_dict(), indent=2, ensure_ascii=False)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(text + "\n")
        logger.info("Result written to %s", args.output)
    else:
        print(text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
