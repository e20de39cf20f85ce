"""Wiring of the governance engines around one database and one set of collaborators."""

from __future__ import annotations

from dataclasses import dataclass

from govcord.configuration.governance_settings import GovernanceSettings
from govcord.database.db_connection import ConnectionManager
from govcord.governance.candidate_registry import CandidateRegistry
from govcord.governance.clock import Clock, system_clock
from govcord.governance.collaborators import NotificationSink, PrivilegeGateway, ProfileStore
from govcord.governance.election_lifecycle import ElectionLifecycleManager
from govcord.governance.impeachment import ImpeachmentEngine
from govcord.governance.power_transfer import PowerTransferExecutor
from govcord.governance.reelection import ReelectionSessionEngine
from govcord.governance.scans import GovernanceScans
from govcord.governance.voting_ledger import VotingLedger
from govcord.scheduler.governance_scheduler import GovernanceScheduler


@dataclass
class GovernanceService:
    db: ConnectionManager
    settings: GovernanceSettings
    executor: PowerTransferExecutor
    registry: CandidateRegistry
    ledger: VotingLedger
    lifecycle: ElectionLifecycleManager
    reelection: ReelectionSessionEngine
    impeachment: ImpeachmentEngine
    scans: GovernanceScans
    scheduler: GovernanceScheduler

    @classmethod
    def build(
        cls,
        db: ConnectionManager,
        settings: GovernanceSettings,
        profiles: ProfileStore,
        gateway: PrivilegeGateway,
        notifier: NotificationSink,
        clock: Clock = system_clock,
    ) -> "GovernanceService":
        executor = PowerTransferExecutor(db, gateway, notifier, settings, clock)
        registry = CandidateRegistry(db, profiles, notifier, settings, clock)
        ledger = VotingLedger(db, profiles, clock)
        lifecycle = ElectionLifecycleManager(db, registry, ledger, executor, notifier, settings, clock)
        reelection = ReelectionSessionEngine(db, profiles, executor, notifier, settings, clock)
        impeachment = ImpeachmentEngine(db, profiles, gateway, executor, notifier, settings, clock)
        return cls(
            db=db,
            settings=settings,
            executor=executor,
            registry=registry,
            ledger=ledger,
            lifecycle=lifecycle,
            reelection=reelection,
            impeachment=impeachment,
            scans=GovernanceScans(lifecycle, reelection, impeachment, executor),
            scheduler=GovernanceScheduler(),
        )
