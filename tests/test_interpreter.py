"""End-to-end command tests through a GameSession over the test world."""

from ifengine.core.commands import CommandResult
from ifengine.core.interpreter import UNKNOWN_COMMAND


def _walk(session, *commands):
    result = None
    for command in commands:
        result = session.submit_command(command)
    return result


# --- movement & perception ---

def test_start_describes_room_and_marks_it_visited(session):
    state = session.state
    assert state.player.visited_rooms == ("start",)
    assert state.log[0].text == "--- Start ---"
    assert session.bus.history == ["room.new.explored"]


def test_go_north(session):
    result = session.submit_command("go north")
    assert result.lines[0] == "You go north."
    assert result.updates["current_room_id"] == "hall"
    assert "--- Hall ---" in result.lines
    assert "room.new.explored" in result.events
    assert session.state.current_room_id == "hall"


def test_bare_direction_and_bad_exit(session):
    assert session.submit_command("n").lines[0] == "You go north."
    assert session.submit_command("go up").lines == ["You can't go that way."]
    assert session.state.current_room_id == "hall"


def test_revisiting_emits_no_explore_event(session):
    seen = []
    session.on_score_event(seen.append)
    _walk(session, "go north", "go south")
    assert seen == ["room.new.explored"]


def test_look_and_status(session):
    look = session.submit_command("look")
    assert look.lines[0] == "--- Start ---"
    assert look.lines[-1] == "Exits: north"
    assert "Health: 100/100" in session.submit_command("status").lines


def test_unknown_and_invalid_input(session):
    assert session.submit_command("xyzzy").lines == [UNKNOWN_COMMAND]
    assert session.submit_command("   ").lines == ["Invalid command input."]
    assert session.submit_command(None).lines == ["Invalid command input."]


def test_turn_counter(session):
    _walk(session, "look", "look")
    assert session.state.turn == 2


# --- items ---

def test_take_and_drop(session):
    session.submit_command("go north")
    assert session.submit_command("take lamp").lines == ["You take the lamp."]
    assert session.state.player.inventory == ("lamp",)
    assert session.state.items_in("hall") == ()
    assert session.submit_command("take lamp").lines == ["You already have the lamp."]
    assert session.submit_command("drop lamp").lines == ["You drop the lamp."]
    assert session.state.items_in("hall") == ("lamp",)
    assert session.submit_command("drop lamp").lines == ["You don't have a lamp to drop."]


def test_inventory_and_use(session):
    assert session.submit_command("inventory").lines == ["You are not carrying anything."]
    _walk(session, "go north", "pick up the lamp")
    assert session.submit_command("i").lines == ["You are carrying:", "  - lamp"]
    assert session.submit_command("use lamp").lines == ["The lamp flickers on."]
    assert session.submit_command("use rope").lines == ["You don't have a rope."]


def test_inspect(session):
    session.submit_command("go north")
    assert session.submit_command("look at keeper").lines == ["An old keeper of the hall."]
    assert session.submit_command("examine lamp").lines == ["A brass lamp."]
    assert session.submit_command("inspect dragon").lines == ["You don't see a dragon here."]


# --- fall-through chain ---

def test_room_interaction_sets_flag(session):
    session.submit_command("go north")
    assert session.submit_command("ring bell").lines == ["The bell tolls."]
    assert "heard_song" in session.state.flags


def test_room_handler_and_npc_interceptor(session):
    def dance(ctx):
        if ctx.verb == "dance":
            return CommandResult().say("The keeper claps along.")
        return None

    def greet(ctx):
        if ctx.verb == "speak":
            return CommandResult().say("The keeper nods slowly.")
        return None

    session.submit_command("go north")
    assert session.submit_command("talk to keeper").lines == ["Keeper has nothing to say right now."]
    assert session.submit_command("talk to ghost").lines == ["There is no ghost here."]

    session.interpreter.register_room_handler("hall", dance)
    session.interpreter.add_npc_interceptor(greet)
    assert session.submit_command("dance").lines == ["The keeper claps along."]
    assert session.submit_command("speak with keeper").lines == ["The keeper nods slowly."]
    assert session.submit_command("juggle").lines == [UNKNOWN_COMMAND]


def test_help(session):
    result = session.submit_command("help")
    assert result.lines[0] == "Available commands:"
    assert not any(line.startswith("  debug") for line in result.lines)
    assert session.submit_command("help take").lines[0] == "take - Pick up an item"
    assert session.submit_command("help tke").lines == ["Unknown command: tke. Did you mean 'take'?"]


def test_debug_verb_is_hidden_outside_debug_mode(session, make_session):
    assert session.submit_command("debug traps").lines == [UNKNOWN_COMMAND]
    debug_session = make_session(debug_mode=True)
    lines = debug_session.submit_command("debug").lines
    assert any(line.startswith("vault: moderate mechanical") for line in lines)
    assert debug_session.submit_command("debug flags").lines == ["Flags: game_started"]


# --- traps ---

def test_hidden_trap_springs_on_entry(session):
    result = _walk(session, "go north", "go east")
    assert "TRAP TRIGGERED: Blades swing from the walls!" in result.lines
    assert "You take 10 damage." in result.lines
    assert "trap.triggered" in result.events
    assert session.state.player.health == 90
    assert session.state.player.score == -5
    # A spent trap stays quiet
    result = _walk(session, "go west", "go east")
    assert "trap.triggered" not in result.events
    assert session.state.player.health == 90


def test_detected_trap_fuse_springs(make_session, rng, clock):
    session = make_session(inventory=["trap_detector"])
    session.submit_command("go north")
    rng.push(0.1)
    result = session.submit_command("go east")
    assert "Your detector chirps: there is a hidden trap nearby! (danger: medium)" in result.lines
    assert "Type 'disarm' to try to disarm it before it springs." in result.lines
    assert session.state.player.health == 100
    assert session.scheduler.has_pending("room")

    clock.advance(6)
    results = session.tick()
    assert len(results) == 1
    assert results[0].lines[0] == "Time runs out: the trap springs!"
    assert session.state.player.health == 90


def test_leaving_cancels_fuse(make_session, rng, clock):
    session = make_session(inventory=["trap_detector"])
    session.submit_command("go north")
    rng.push(0.1)
    session.submit_command("go east")
    rng.push(0.0)
    result = session.submit_command("go west")
    assert result.lines[:2] == ["You slip past the trap before it can spring.", "You go west."]
    assert session.state.current_room_id == "hall"
    clock.advance(10)
    assert session.tick() == []
    assert session.state.player.health == 100


def test_disarm_detected_trap(make_session, rng, clock):
    session = make_session(inventory=["trap_detector"])
    session.submit_command("go north")
    rng.push(0.1)
    session.submit_command("go east")
    rng.push(0.1)
    result = session.submit_command("disarm")
    assert result.lines == ["You carefully disarm the moderate mechanical trap."]
    assert result.events == ["trap.disarmed"]
    clock.advance(10)
    assert session.tick() == []
    assert session.state.player.health == 100


def test_search_for_traps(session):
    session.submit_command("go north")
    assert session.submit_command("search for traps").lines == ["You search carefully but find no traps."]
    assert session.submit_command("search").lines == ['What do you want to search for? Try "search for traps".']
    assert session.submit_command("disarm").lines == ["There are no active traps here to disarm."]


def test_teleport_trap(session):
    result = _walk(session, "go north", "go down")
    assert "The trap teleports you to another location!" in result.lines
    assert result.lines[-1] == "Exits: north"
    assert session.state.current_room_id == "start"
    assert "pit" in session.state.player.visited_rooms


# --- room scripts ---

def test_delayed_on_enter_script(session, clock):
    _walk(session, "go north", "go west")
    clock.advance(5)
    results = session.tick()
    assert [r.lines for r in results] == [["Birdsong."]]


def test_on_exit_script_and_cancelled_delay(session, clock):
    result = _walk(session, "go north", "go west", "go east")
    assert result.lines[1] == "The trees rustle behind you."
    assert "left_glade" in session.state.flags
    clock.advance(5)
    assert session.tick() == []


# --- miniquests ---

def test_quest_listing_and_offers(session):
    _walk(session, "go north", "go west")
    assert session.state.quest_offers == ("riddle",)
    assert session.submit_command("quests").lines == [
        "=== Challenges ===",
        "[AVAILABLE] Riddle of Echoes - The trees ask a riddle.",
        '    Try: "solve riddle" (medium)',
        "[LOCKED] Chant with the Trees",
    ]
    session.submit_command("go east")
    assert session.submit_command("challenges").lines == ["There are no challenges here."]


def test_trigger_phrase_completes_quest(session, rng):
    _walk(session, "go north", "go west")
    rng.push(0.1)
    result = session.submit_command("solve riddle")
    assert result.lines == ["Miniquest completed: Riddle of Echoes!"]
    assert "solve.puzzle.simple" in result.events
    assert session.state.player.score == 20
    assert "miniquest_riddle_completed" in session.state.flags
    assert session.state.quest_offers == ()


def test_trigger_verb_only_gives_hint(session):
    _walk(session, "go north", "go west")
    assert session.submit_command("solve crossword").lines == ["Try: solve riddle"]
    assert session.quest_attempts == {}


def test_flag_unlocks_quest(session, rng):
    _walk(session, "go north", "ring bell", "go west")
    assert session.state.quest_offers == ("riddle", "chant")
    rng.push(0.0)
    result = session.submit_command("chant softly")
    assert "discover.location" in result.events


def test_attempt_cap_exhausts_quest(make_session):
    session = make_session(quest_attempt_cap=2)
    _walk(session, "go north", "go west")
    first = session.submit_command("attempt riddle")
    assert first.lines == ['You attempt "Riddle of Echoes" but don\'t succeed this time. Hint: Think of echoes.']
    second = session.submit_command("try riddle of echoes")
    assert second.lines[-1] == 'You have run out of attempts for "Riddle of Echoes".'
    assert session.quest_attempts == {"glade:riddle": 2}
    assert session.state.quest_offers == ()
    assert session.submit_command("quests").lines[1].startswith("[EXHAUSTED]")
    assert session.submit_command("solve riddle").lines == ["You cannot attempt this quest right now."]


def test_attempt_errors(session):
    _walk(session, "go north", "go west")
    assert session.submit_command("attempt").lines == ["Attempt what? Type 'quests' to see the challenges here."]
    assert session.submit_command("attempt dragon").lines == ["Quest dragon not found in glade."]
