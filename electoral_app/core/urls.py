from django.urls import path

from core import views_elections, views_health

urlpatterns = [
    path("elections/", views_elections.elections_collection, name="elections"),
    path("elections/bulk/", views_elections.elections_bulk_create, name="elections-bulk"),
    path("elections/bulk-status/", views_elections.elections_bulk_status, name="elections-bulk-status"),
    path("elections/<int:election_id>/", views_elections.election_item, name="election-detail"),
    path(
        "elections/<int:election_id>/candidates/",
        views_elections.election_candidate_add,
        name="election-candidates",
    ),
    path(
        "elections/<int:election_id>/candidates/<int:candidate_id>/",
        views_elections.election_candidate_remove,
        name="election-candidate",
    ),
    path("elections/<int:election_id>/vote/", views_elections.election_vote_submit, name="election-vote"),
    path("elections/<int:election_id>/results/", views_elections.election_results, name="election-results"),
    path("healthz", views_health.healthz, name="healthz"),
    path("readyz", views_health.readyz, name="readyz"),
]
