"""Election JSON endpoints.

All public view functions are re-exported here so that ``core.urls`` can
reference ``views_elections.<view_name>`` directly.
"""

from core.views_elections.candidates import election_candidate_add, election_candidate_remove
from core.views_elections.manage import (
    election_create,
    election_delete,
    election_detail,
    election_item,
    election_update,
    elections_bulk_create,
    elections_bulk_status,
    elections_collection,
    elections_list,
)
from core.views_elections.results import election_results
from core.views_elections.vote import election_vote_submit

__all__ = [
    "election_candidate_add",
    "election_candidate_remove",
    "election_create",
    "election_delete",
    "election_detail",
    "election_item",
    "election_results",
    "election_update",
    "election_vote_submit",
    "elections_bulk_create",
    "elections_bulk_status",
    "elections_collection",
    "elections_list",
]
