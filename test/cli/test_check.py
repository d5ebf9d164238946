from pytest_bdd import scenarios

scenarios(
    "cli/check.feature",
)
