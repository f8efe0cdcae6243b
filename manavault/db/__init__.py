from manavault.db.database import async_session_factory, get_session, init_db
from manavault.db.operations import (
    add_match,
    add_wanted_card,
    assign_storage_item,
    container_to_model,
    count_assigned_copies,
    count_decks_by_folder,
    create_container,
    create_deck,
    create_folder,
    deck_to_model,
    delete_collection,
    delete_container,
    delete_deck,
    delete_folder,
    delete_match,
    delete_wanted_card,
    entry_to_model,
    find_wanted_card,
    folder_to_model,
    generate_slug,
    get_cached_cards,
    get_collected_card_ids,
    get_collection_entries,
    get_container,
    get_deck,
    get_deck_by_slug,
    get_folder,
    get_matches,
    get_storage_item,
    get_wanted_card,
    insert_collection_entries,
    item_to_model,
    list_containers,
    list_decks,
    list_folders,
    list_wanted_cards,
    match_to_model,
    save_deck,
    sync_collection_entries,
    unassign_storage_item,
    update_container,
    update_entry_prices,
    update_folder,
    update_wanted_card,
    upsert_cards,
    wanted_to_model,
)

__all__ = [
    "add_match",
    "add_wanted_card",
    "assign_storage_item",
    "async_session_factory",
    "container_to_model",
    "count_assigned_copies",
    "count_decks_by_folder",
    "create_container",
    "create_deck",
    "create_folder",
    "deck_to_model",
    "delete_collection",
    "delete_container",
    "delete_deck",
    "delete_folder",
    "delete_match",
    "delete_wanted_card",
    "entry_to_model",
    "find_wanted_card",
    "folder_to_model",
    "generate_slug",
    "get_cached_cards",
    "get_collected_card_ids",
    "get_collection_entries",
    "get_container",
    "get_deck",
    "get_deck_by_slug",
    "get_folder",
    "get_matches",
    "get_session",
    "get_storage_item",
    "get_wanted_card",
    "init_db",
    "insert_collection_entries",
    "item_to_model",
    "list_containers",
    "list_decks",
    "list_folders",
    "list_wanted_cards",
    "match_to_model",
    "save_deck",
    "sync_collection_entries",
    "unassign_storage_item",
    "update_container",
    "update_entry_prices",
    "update_folder",
    "update_wanted_card",
    "upsert_cards",
    "wanted_to_model",
]
