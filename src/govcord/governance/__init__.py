"""
Community self-governance engine.

Leaf-first:

- **power_transfer.py**: the only writer of administrator seats and the only
  caller of the privilege gateway.
- **candidate_registry.py**: eligibility checks and candidate code assignment.
- **voting_ledger.py**: one ballot per voter and per-cohort tallies.
- **reelection.py**: referenda on a sitting administrator's tenure.
- **impeachment.py**: member-initiated removal proceedings.
- **election_lifecycle.py**: registration, voting and completion of elections.
- **scans.py**: the periodic triggers that drive elections and proceedings.

Supporting modules: ``errors`` (error taxonomy), ``cohort`` (cohort label
normalisation), ``collaborators`` (profile store, privilege gateway and
notification sink contracts), ``access`` (command tiers), ``service``
(wires everything together).
"""
