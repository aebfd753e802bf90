from __future__ import annotations

import argparse
import json
from pathlib import Path

import anyio

from visacheck.pipeline.analyze import verify_documents
from visacheck.pipeline.policy import DEFAULT_POLICY, policy_from_payload
from visacheck.schemas import ApplicantInput


def main() -> None:
    parser = argparse.ArgumentParser(description="Verify local travel documents against an applicant record.")
    parser.add_argument("documents", nargs="+", type=Path, help="Image or PDF files, in submission order")
    parser.add_argument("--applicant", type=Path, required=True, help="JSON file with the applicant record")
    parser.add_argument("--policy", type=Path, help="JSON file with a (partial) eligibility policy")
    args = parser.parse_args()

    applicant = ApplicantInput.model_validate(json.loads(args.applicant.read_text()))
    policy = policy_from_payload(json.loads(args.policy.read_text())) if args.policy else DEFAULT_POLICY
    buffers = [path.read_bytes() for path in args.documents]

    async def _run():
        return await verify_documents(buffers, applicant, policy)

    result = anyio.run(_run)
    print(json.dumps(result.model_dump(), indent=2))


if __name__ == "__main__":
    main()
