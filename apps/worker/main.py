"""NonprofitSuite Worker Service - Main orchestrator."""

# flake8: noqa: E501


import signal
import sys
import threading
import time
from typing import Dict, List, Optional

from flask import Flask, jsonify
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

from apps.modules import CalendarEventsModule, DocumentsModule, QueryOptimizer, RetentionPoliciesModule
from apps.services.reminders.channels import EmailChannel, InAppChannel, ReminderChannel, SmsChannel
from apps.services.reminders.service import ReminderService
from apps.services.retention.service import RetentionService
from apps.worker.config.settings import Settings, settings as default_settings
from apps.worker.jobs import (
    CalendarSyncJob,
    JobLock,
    JobRunResult,
    JobScheduler,
    ReminderDispatchJob,
    RetentionJob,
    ScheduledJob,
)
from apps.worker.utils.logger import configure_from_settings, get_logger
from shared.cache import CacheManager, create_cache_backend
from shared.database.manager import DatabaseManager
from shared.licensing import LicenseGate
from shared.options import OptionStore

logger = get_logger(__name__)

# Prometheus metrics
job_runs_total = Counter(
    "worker_job_runs_total",
    "Total number of scheduled job runs",
    ["job", "status"],
)
job_duration = Histogram(
    "worker_job_duration_seconds",
    "Scheduled job run duration",
    ["job"],
)
job_errors = Counter(
    "worker_job_errors_total",
    "Total number of errors reported by scheduled jobs",
    ["job"],
)
last_success_timestamp = Gauge(
    "worker_job_last_success_timestamp",
    "Timestamp of last successful job run",
    ["job"],
)


class WorkerService:
    """Main worker service orchestrator.

    Builds every service once and hands them to the jobs that need them.
    """

    def __init__(self, config: Settings = default_settings, db_manager: Optional[DatabaseManager] = None):
        """Initialize worker service."""
        self.settings = config
        self.running = False
        self.stop_event = threading.Event()
        self.last_results: Dict[str, JobRunResult] = {}
        self.health_app = Flask(__name__)

        self.db_manager = db_manager or DatabaseManager(
            primary_url=config.database_url,
            replica_url=config.database_read_url,
            pool_size=config.db_pool_size,
            migrate=config.db_migrate,
        )
        db = self.db_manager.write

        self.cache = CacheManager(
            create_cache_backend(config.cache_backend, config.redis_url),
            prefix=config.cache_prefix,
            default_ttl=config.cache_default_ttl,
        )
        self.options = OptionStore(db)
        self.license_gate = LicenseGate(self.options, dev_mode=config.dev_mode)
        self.optimizer = QueryOptimizer(
            default_max_records=config.max_query_records,
            slow_query_threshold=config.slow_query_threshold,
        )
        module_args = dict(
            license_gate=self.license_gate,
            optimizer=self.optimizer,
            max_per_page=config.max_per_page,
        )
        self.modules = {
            "documents": DocumentsModule(db, self.cache, **module_args),
            "retention_policies": RetentionPoliciesModule(db, self.cache, **module_args),
            "calendar_events": CalendarEventsModule(db, self.cache, **module_args),
        }

        self.retention_service = RetentionService(db)
        self.reminder_service = ReminderService(
            db,
            channels=self._build_channels(db),
            batch_size=config.reminder_batch_size,
        )

        self.job_lock = JobLock(db)
        self.jobs: List[ScheduledJob] = []
        self.scheduler = JobScheduler(timezone=config.timezone)

        self._setup_health_endpoints()

    def _build_channels(self, db) -> List[ReminderChannel]:
        config = self.settings
        channels: List[ReminderChannel] = [
            EmailChannel(
                backend=config.email_backend,
                from_address=config.email_from_address,
                from_name=config.email_from_name,
                smtp_host=config.smtp_host,
                smtp_port=config.smtp_port,
                smtp_username=config.smtp_username,
                smtp_password=config.smtp_password,
                smtp_use_tls=config.smtp_use_tls,
            ),
            InAppChannel(db),
        ]
        if config.sms_enabled:
            if config.twilio_account_sid and config.twilio_auth_token and config.twilio_from_number:
                channels.append(
                    SmsChannel(
                        config.twilio_account_sid,
                        config.twilio_auth_token,
                        config.twilio_from_number,
                    )
                )
            else:
                logger.warning("SMS enabled but Twilio credentials are incomplete")
        return channels

    def _setup_health_endpoints(self):
        """Setup Flask health check and metrics endpoints."""

        @self.health_app.route("/healthz")
        def health_check():
            """Health check endpoint."""
            database = self.db_manager.ping()
            healthy = self.running and all(database.values())
            health_status = {
                "status": ("healthy" if healthy else "degraded") if self.running else "stopped",
                "database": database,
                "jobs": {
                    job.name: {"last_status": self.last_results[job.name].status if job.name in self.last_results else None}
                    for job in self.jobs
                },
            }
            return jsonify(health_status), 200 if healthy else 503

        if self.settings.metrics_enabled:

            @self.health_app.route("/metrics")
            def metrics():
                """Prometheus metrics endpoint."""
                return generate_latest(), 200, {"Content-Type": CONTENT_TYPE_LATEST}

        @self.health_app.route("/status")
        def status():
            """Detailed status endpoint."""
            return (
                jsonify(
                    {
                        "service": "nonprofitsuite-worker",
                        "running": self.running,
                        "jobs": [
                            {
                                "name": job.name,
                                "type": job.__class__.__name__,
                                "lock": self.job_lock.get_status(job.name),
                                "last_result": self.last_results[job.name].to_dict() if job.name in self.last_results else None,
                            }
                            for job in self.jobs
                        ],
                        "schedule": self.scheduler.get_jobs(),
                        "records": self._record_counts(),
                        "cache": self.cache.get_stats(),
                        "pro_active": self.license_gate.is_pro_active(),
                        "settings": {
                            "timezone": self.settings.timezone,
                            "retention_cron": self.settings.retention_cron,
                            "calendar_sync_frequency": self.settings.calendar_sync_frequency,
                            "reminder_interval": self.settings.reminder_interval,
                        },
                    }
                ),
                200,
            )

    def _record_counts(self) -> Dict[str, int]:
        """Row counts per module, read from the replica when one is configured."""
        read = self.db_manager.read
        return {name: read(read[module.table_name]).count() for name, module in self.modules.items()}

    def _initialize_jobs(self):
        """Create and schedule enabled jobs."""
        db = self.db_manager.write
        timeout = self.settings.job_lock_timeout

        if self.settings.retention_enabled:
            self.retention_service.install_default_policies()
            job = RetentionJob(db, self.job_lock, self.retention_service, lock_timeout=timeout)
            self.jobs.append(job)
            self.scheduler.schedule_cron(job, self.settings.retention_cron, lambda job=job: self.run_job(job))

        if self.settings.calendar_sync_enabled:
            job = CalendarSyncJob(db, self.job_lock, self.options, lock_timeout=timeout)
            self.jobs.append(job)
            self.scheduler.schedule_interval(
                job, self.settings.calendar_sync_interval, lambda job=job: self.run_job(job)
            )

        if self.settings.reminders_enabled:
            job = ReminderDispatchJob(
                db, self.job_lock, self.reminder_service, lock_timeout=self.settings.reminder_lock_timeout
            )
            self.jobs.append(job)
            self.scheduler.schedule_interval(
                job, self.settings.reminder_interval, lambda job=job: self.run_job(job)
            )

        if not self.jobs:
            logger.warning("No jobs enabled! Check your configuration.")

        logger.info(f"Initialized {len(self.jobs)} job(s)")

    def run_job(self, job: ScheduledJob) -> JobRunResult:
        """Run one job and record its metrics."""
        with job_duration.labels(job=job.name).time():
            result = job.run()

        job_runs_total.labels(job=job.name, status=result.status).inc()
        errors = result.details.get("errors") or []
        if result.error or errors:
            job_errors.labels(job=job.name).inc(len(errors) or 1)
        if result.status == ScheduledJob.STATUS_SUCCESS:
            last_success_timestamp.labels(job=job.name).set(time.time())

        self.last_results[job.name] = result
        return result

    def start(self):
        """Start the worker service."""
        logger.info("Starting NonprofitSuite Worker Service")
        self.running = True

        self._initialize_jobs()

        if self.settings.run_jobs_on_startup:
            logger.info("Running all jobs on startup")
            for job in self.jobs:
                self.run_job(job)

        self.scheduler.start()

        logger.info(
            "NonprofitSuite Worker Service started",
            health_port=self.settings.health_check_port,
        )

    def stop(self):
        """Stop the worker service."""
        if not self.running:
            return
        logger.info("Stopping NonprofitSuite Worker Service")
        self.running = False
        self.stop_event.set()

        self.scheduler.shutdown(wait=True)
        self.db_manager.close()

        logger.info("NonprofitSuite Worker Service stopped")

    def run_health_server(self):
        """Run Flask health check server in a separate thread."""

        def run_flask():
            self.health_app.run(
                host="0.0.0.0",
                port=self.settings.health_check_port,
                debug=False,
                use_reloader=False,
            )

        health_thread = threading.Thread(target=run_flask, daemon=True)
        health_thread.start()
        logger.info(
            "Health check server started",
            port=self.settings.health_check_port,
        )


def main():
    """Main entry point."""
    configure_from_settings(default_settings)
    service = WorkerService()

    # Setup signal handlers
    def signal_handler(sig, frame):
        logger.info(f"Received signal {sig}, shutting down...")
        service.stop_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        service.run_health_server()
        service.start()

        # Keep running
        service.stop_event.wait()

    except Exception as e:
        logger.error("Fatal error in worker service", error=str(e), exc_info=True)
        sys.exit(1)
    finally:
        service.stop()


if __name__ == "__main__":
    main()
