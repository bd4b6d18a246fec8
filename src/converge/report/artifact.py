"""CI/CD artifact generation from a Plan and RunReport."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from ..executor import RunReport
from ..planner import Plan
from ..utils.errors import ConvergeError
from ..utils.logging import get_logger

logger = get_logger("report.artifact")


def generate_artifacts(plan: Plan, output_dir: Path, report: Optional[RunReport] = None) -> None:
    """
    Generate CI/CD artifacts.
    
    Creates the following files in output_dir:
    - plan.json: Ordered actions and steps
    - report.json: Per-resource terminal states (only when a report is given)
    - metadata.json: Report metadata
    
    Args:
        plan: Plan that was built (and possibly applied)
        output_dir: Directory to write artifacts to
        report: RunReport from apply, if any
        
    Raises:
        ConvergeError: If file write fails
    """
    from .. import __version__
    
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConvergeError(f"Failed to create output directory: {e}")
    
    # 1. plan.json - deterministic for a given plan
    plan_path = output_dir / "plan.json"
    try:
        with open(plan_path, 'w', encoding='utf-8') as f:
            json.dump(plan.model_dump(mode="json"), f, indent=2, sort_keys=True)
        logger.debug(f"Written plan.json: {plan_path}")
    except (OSError, TypeError) as e:
        raise ConvergeError(f"Failed to write plan.json: {e}")
    
    # 2. report.json - terminal state of every resource
    if report is not None:
        report_path = output_dir / "report.json"
        payload = report.model_dump(mode="json")
        payload["succeeded"] = report.succeeded
        payload["counts"] = report.counts()
        try:
            with open(report_path, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2, sort_keys=True)
            logger.debug(f"Written report.json: {report_path}")
        except (OSError, TypeError) as e:
            raise ConvergeError(f"Failed to write report.json: {e}")
    
    # 3. metadata.json
    metadata = {
        "converge_version": __version__,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "plan_summary": plan.summary(),
        "applied": report is not None,
    }
    
    metadata_path = output_dir / "metadata.json"
    try:
        with open(metadata_path, 'w', encoding='utf-8') as f:
            json.dump(metadata, f, indent=2)
        logger.debug(f"Written metadata.json: {metadata_path}")
    except OSError as e:
        raise ConvergeError(f"Failed to write metadata.json: {e}")
    
    logger.info(f"Generated artifacts in: {output_dir}")
