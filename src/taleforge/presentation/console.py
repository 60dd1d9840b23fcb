from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from taleforge.application.dtos import ActionType, GameServiceResponse, GameState
from taleforge.application.services.game_service import GameService
from taleforge.domain.errors import GameError


_CONSOLE = Console()
_BORDER_STORY = "yellow"
_BORDER_COMBAT = "red"
_BORDER_PROMPT = "magenta"
_BORDER_SHEET = "green"
_BORDER_END = "bright_white"

CHOICE_ACTIONS = {
    "continue forward": ActionType.CONTINUE,
    "investigate": ActionType.INVESTIGATE,
    "decline": ActionType.DECLINE,
    "attack": ActionType.ATTACK,
    "flee": ActionType.FLEE,
    "use item": ActionType.USE_ITEM_COMBAT,
}
QUIT_WORDS = {"q", "quit", "exit"}


def _ornate_title(title: str) -> str:
    core = str(title or "").strip() or "Panel"
    return f"[bold yellow]{core}[/bold yellow]"


def _ask(prompt: str) -> str:
    return _CONSOLE.input(f"[dim]{prompt}[/dim] ").strip()


def _render_panel(title: str, lines: list[str], *, border_style: str = _BORDER_STORY) -> None:
    rows = [str(line) for line in lines if str(line).strip()]
    body = "\n".join(rows) if rows else "Nothing happens."
    _CONSOLE.print(Panel.fit(body, title=_ornate_title(title), border_style=border_style))


def _render_sheet(state: GameState) -> None:
    character = state.character
    sheet = Table.grid(padding=(0, 1))
    sheet.add_column(style="bold yellow", justify="right")
    sheet.add_column(style="white")
    sheet.add_row("Campaign", state.campaign.name)
    sheet.add_row("Hero", character.name)
    sheet.add_row("HP", f"{character.current_health}/{character.true_max_health}")

    attack = str(character.attack)
    if character.temporary_attack:
        attack += f" (buff {character.temporary_attack:+d})"
    defense = str(character.defense)
    if character.temporary_defense:
        defense += f" (buff {character.temporary_defense:+d})"
    sheet.add_row("Attack", attack)
    sheet.add_row("Defense", defense)

    for slot in ("weapon", "armour", "shield"):
        piece = getattr(state.equipment, slot)
        sheet.add_row(slot.title(), f"{piece.name} (+{piece.bonus} {piece.bonus_stat})" if piece else "-")
    sheet.add_row("Pack", f"{len(state.inventory)} item(s)")
    if state.enemy is not None:
        enemy = state.enemy
        boss = " [bold red]BOSS[/bold red]" if enemy.is_boss else ""
        sheet.add_row("Enemy", f"{enemy.name}{boss} {enemy.current_health}/{enemy.max_health} HP")
    sheet.add_row("Phase", state.phase.value.replace("_", " ").title())
    _CONSOLE.print(Panel.fit(sheet, title=_ornate_title("Adventurer"), border_style=_BORDER_SHEET))


def _render_response(response: GameServiceResponse) -> None:
    if not response.success:
        _render_panel("Cannot Do That", [response.error or response.message], border_style=_BORDER_END)
        return

    state = response.game_state
    phase = state.phase.value if state is not None else ""
    border = {"combat": _BORDER_COMBAT, "investigation_prompt": _BORDER_PROMPT}.get(phase, _BORDER_STORY)
    lines = [response.message]
    if response.combat_result is not None:
        result = response.combat_result
        lines.append(f"[dim]Roll {result.dice_roll} ({result.classification.replace('_', ' ')})[/dim]")
    if response.item_found is not None and response.item_found.left_behind:
        lines.append("[dim]Your pack is full.[/dim]")
    title = f"Event {state.recent_events[0].event_number}" if state is not None and state.recent_events else "The Road"
    _render_panel(title, lines, border_style=border)


def _choose_index(title: str, options: list[str]) -> int | None:
    """Numbered menu; returns None when the player quits."""
    _CONSOLE.print(_ornate_title(title))
    for index, option in enumerate(options, start=1):
        _CONSOLE.print(f"  {index}. {option}")
    while True:
        raw = _ask("Choose a number (q to quit):").lower()
        if raw in QUIT_WORDS:
            return None
        if raw.isdigit() and 1 <= int(raw) <= len(options):
            return int(raw) - 1
        _CONSOLE.print("[red]Please enter one of the listed numbers.[/red]")


def run_campaign_creation(game_service: GameService, account_id: int) -> int | None:
    name = ""
    while not name:
        name = _ask("Name your hero:")
    races = game_service.list_races()
    race_index = _choose_index("Choose a race", [f"{row.name} (HP {row.vitality}, ATK {row.attack}, DEF {row.defense})" for row in races])
    if race_index is None:
        return None
    classes = game_service.list_classes()
    class_index = _choose_index("Choose a class", [f"{row.name} (HP {row.vitality}, ATK {row.attack}, DEF {row.defense})" for row in classes])
    if class_index is None:
        return None

    try:
        state = game_service.create_campaign(
            account_id=account_id,
            name=f"The Tale of {name}",
            character_name=name,
            race_id=races[race_index].id,
            class_id=classes[class_index].id,
        )
    except GameError as exc:
        _render_panel("Creation Failed", [str(exc)], border_style=_BORDER_END)
        return None
    return state.campaign.id


def choose_existing_campaign(game_service: GameService, account_id: int) -> int | None:
    campaigns = [row for row in game_service.list_campaigns(account_id) if row.state == "active"]
    if not campaigns:
        _render_panel("Continue", ["No campaigns in progress."])
        return None
    index = _choose_index(
        "Continue a campaign",
        [f"{row.name} - {row.character_name or '?'} (event {row.event_count})" for row in campaigns],
    )
    return campaigns[index].id if index is not None else None


def _pick_item(state: GameState) -> int | None:
    if not state.inventory:
        return None
    index = _choose_index(
        "Use which item?",
        [f"{item.name} ({item.stat_modified} {item.stat_value:+d})" for item in state.inventory],
    )
    return state.inventory[index].id if index is not None else None


def run_game_loop(game_service: GameService, campaign_id: int) -> GameState:
    state = game_service.get_game_state(campaign_id)
    if state.phase.is_terminal:
        _render_panel("The End", ["This tale has already been told."], border_style=_BORDER_END)
        return state

    if state.investigation_prompt is not None:
        _render_panel("Something Stirs", [state.investigation_prompt.message], border_style=_BORDER_PROMPT)
    options = game_service.available_choices(campaign_id)

    while options:
        _render_sheet(state)
        index = _choose_index("What do you do?", options)
        if index is None:
            _CONSOLE.print("Goodbye.")
            return state

        action_type = CHOICE_ACTIONS[options[index].lower()]
        action_data: dict[str, object] = {}
        if action_type is ActionType.USE_ITEM_COMBAT:
            item_id = _pick_item(state)
            if item_id is None:
                continue
            action_data["itemId"] = item_id

        response = game_service.process_player_action(
            {"campaignId": campaign_id, "actionType": action_type.value, "actionData": action_data}
        )
        _render_response(response)
        if response.game_state is not None:
            state = response.game_state
        if response.success:
            options = list(response.choices)

    ending = "Victory! The realm will sing of you." if state.phase.value == "victory" else "Your story ends here."
    _render_panel("The End", [ending], border_style=_BORDER_END)
    return state


def main_menu(game_service: GameService, account_id: int = 1) -> None:
    options = ["New Campaign", "Continue", "Quit"]
    _CONSOLE.print(Panel.fit("[bold yellow]TALEFORGE[/bold yellow]", border_style=_BORDER_STORY))
    while True:
        choice = _choose_index("Main Menu", options)
        if choice is None or choice == 2:
            _CONSOLE.print("Farewell.")
            return
        if choice == 0:
            campaign_id = run_campaign_creation(game_service, account_id)
        else:
            campaign_id = choose_existing_campaign(game_service, account_id)
        if campaign_id is not None:
            run_game_loop(game_service, campaign_id)
