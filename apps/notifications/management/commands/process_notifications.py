from __future__ import annotations

import time

from django.core.management.base import BaseCommand  # type: ignore

from apps.notifications.worker import QueueWorker, requeue_stale_events


class Command(BaseCommand):
    help = "Processes due notification events (once, or in a loop for cron-less deployments)"

    def add_arguments(self, parser):  # type: ignore
        parser.add_argument("--batch-size", type=int, default=None)
        parser.add_argument("--loop", action="store_true", help="Keep polling until interrupted")
        parser.add_argument("--interval", type=float, default=30.0, help="Seconds between polls with --loop")

    def handle(self, *args, **options):  # type: ignore
        worker = QueueWorker(batch_size=options["batch_size"])

        try:
            while True:
                recovered = requeue_stale_events()
                report = worker.run_batch()
                self.stdout.write(f"recovered={recovered} " + " ".join(f"{k}={v}" for k, v in report.as_dict().items()))
                if not options["loop"]:
                    return
                time.sleep(options["interval"])
        finally:
            worker.close()
