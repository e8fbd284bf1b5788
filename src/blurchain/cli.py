from __future__ import annotations
import argparse
import logging
import os
import sys
from collections import Counter
from typing import List, Optional

from .coordinator import JobOutcome, JobState
from .errors import StageError
from .helpers import (
    BlurConfig, ChainConfig, StoreConfig, DEFAULT_JOB_NAME, list_images, output_root_from_env,
)
from .notifier import LoggingNotifier
from .scheduler import JobScheduler
from .store import ArtifactStore

logger = logging.getLogger(__name__)


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Blur and circle-crop images through a job chain")
    g_io = p.add_argument_group("I/O")
    g_io.add_argument("--image", type=str, help="Path to a single image")
    g_io.add_argument("--dir", type=str, help="Path to a directory of images (one job per image)")
    g_io.add_argument("--output_root", type=str, default=None,
                      help="Artifact root (default: $BLURCHAIN_OUTPUT_ROOT or ./blur_filter_outputs)")
    g_io.add_argument("--job", type=str, default=DEFAULT_JOB_NAME, help="Job name / output namespace")

    g_chain = p.add_argument_group("Chain")
    g_chain.add_argument("--blur_radius", type=float, default=BlurConfig.radius)
    g_chain.add_argument("--blur_passes", type=int, default=1)
    g_chain.add_argument("--no_mask", action="store_true", help="Skip the circular crop")

    p.add_argument("--workers", type=int, default=4)
    p.add_argument("--log_level", type=str, default="INFO")
    return p


def _job_names(base: str, paths: List[str]) -> List[str]:
    if len(paths) == 1:
        return [base]
    parts = [os.path.splitext(os.path.basename(p)) for p in paths]
    stems = Counter(stem for stem, _ext in parts)
    # a.png and a.jpg must not share a namespace
    return [f"{base}-{stem}" if stems[stem] == 1 else f"{base}-{stem}-{ext.lstrip('.')}"
            for stem, ext in parts]


def main(argv: Optional[List[str]] = None) -> int:
    args = build_argparser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.image:
        paths = [args.image]
    elif args.dir:
        paths = list_images(args.dir)
        if not paths:
            raise SystemExit(f"No images found in {args.dir}")
    else:
        raise SystemExit("Provide either --image or --dir")

    try:
        chain_cfg = ChainConfig(
            blur=BlurConfig(radius=args.blur_radius),
            blur_passes=args.blur_passes,
            circle_mask=not args.no_mask,
        )
    except ValueError as e:
        raise SystemExit(str(e))

    store = ArtifactStore(StoreConfig(root=args.output_root or output_root_from_env()))
    outcomes: List[JobOutcome] = []
    with JobScheduler(store, LoggingNotifier(), max_workers=max(1, args.workers)) as scheduler:
        handles = []
        for job_name, path in zip(_job_names(args.job, paths), paths):
            # input lives in its own namespace so cleanup of the job never touches it
            input_ns = f"{job_name}-input"
            try:
                store.clear(input_ns)
                locator = store.import_file(path, input_ns)
            except StageError as e:
                logger.error("%s: %s", path, e)
                outcomes.append(JobOutcome(job_name, JobState.FAILED, error_kind=e.kind, message=e.message))
                continue
            handles.append(scheduler.start(job_name, locator, chain_cfg))
        outcomes.extend(h.result() for h in handles)

    failed = 0
    for o in outcomes:
        if o.ok:
            print(f"{o.job_name}: {o.locator}")
        else:
            failed += 1
            kind = o.error_kind.value if o.error_kind else "error"
            print(f"{o.job_name}: FAILED ({kind}) {o.message}", file=sys.stderr)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
