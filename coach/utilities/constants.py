from typing import Final

# Resource kinds an operator can assign
WORKOUT: Final[str] = "workout"
DIET: Final[str] = "diet"
MEAL: Final[str] = "meal"
RESOURCE_KINDS: Final[tuple[str, ...]] = (WORKOUT, DIET, MEAL)

RESOURCE_LABELS: Final[dict[str, str]] = {
    WORKOUT: "Workout",
    DIET: "Diet",
    MEAL: "Meal",
}

# Platform API paths
CLIENTS_PATH: Final[str] = "/api/clients"
TRAINER_CLIENTS_PATH: Final[str] = "/api/trainers/{trainer_id}/clients"
PACKAGES_PATH: Final[str] = "/api/packages"

TEMPLATE_LIST_PATHS: Final[dict[str, str]] = {
    WORKOUT: "/api/workout-plan-templates",
    DIET: "/api/diet-plan-templates",
    MEAL: "/api/meals",
}

TEMPLATE_DETAIL_PATHS: Final[dict[str, str]] = {
    WORKOUT: "/api/workout-plan-templates/{template_id}",
    DIET: "/api/diet-plans/plan/{template_id}",
    MEAL: "/api/meals/{template_id}",
}

# Assigning a meal creates a diet plan, so meals share the diet feed
EXISTING_PLAN_FEEDS: Final[dict[str, str]] = {
    WORKOUT: "/api/all-workout-plans",
    DIET: "/api/all-diet-plans",
    MEAL: "/api/all-diet-plans",
}

CLONE_PATHS: Final[dict[str, str]] = {
    WORKOUT: "/api/workout-plan-templates/{template_id}/clone",
    DIET: "/api/diet-plans/{template_id}/clone",
    MEAL: "/api/meals/{template_id}/clone",
}

# Cached views that depend on an assignment (see CacheReconciler)
WORKOUT_VIEWS: Final[tuple[str, ...]] = (
    "/api/workout-plan-templates",
    "/api/all-workout-plans",
    "/api/my-workouts",
    "/api/workout-sessions",
)
WORKOUT_CLIENT_VIEW: Final[str] = "/api/workout-plans/{client_id}"

DIET_VIEWS: Final[tuple[str, ...]] = (
    "/api/diet-plans-with-assignments",
    "/api/diet-plan-templates",
    "/api/diet-plan-assignments",
    "/api/all-diet-plans",
)
DIET_CLIENT_VIEW: Final[str] = "/api/diet-plans/{client_id}"

IDEMPOTENCY_HEADER: Final[str] = "Idempotency-Key"

ROLE_ADMIN: Final[str] = "admin"
ROLE_TRAINER: Final[str] = "trainer"
