CONTRACT_VERSION = "1.0.0"

COMMAND_INTENTS = (
    "process_player_action",
    "create_campaign",
    "delete_campaign",
)

QUERY_INTENTS = (
    "get_game_state",
    "available_choices",
    "validate_game_state",
    "list_campaigns",
    "list_races",
    "list_classes",
    "export_event_log",
)

PLAYER_ACTIONS = (
    "continue",
    "investigate",
    "decline",
    "attack",
    "flee",
    "use_item_combat",
)

CONTRACT_DTO_TYPES = (
    "PlayerAction",
    "GameServiceResponse",
    "GameState",
    "CombatResult",
    "ItemFoundView",
    "GameValidation",
    "CampaignSummaryView",
    "LineageOptionView",
)
