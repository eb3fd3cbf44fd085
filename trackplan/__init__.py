from .catalog import (
    CatalogError,
    TrackComponentDefinition,
    TrackSystemDefinition,
    InvalidParams,
    SimpleSwitchParams,
    CurvedSwitchParams,
    ThreeWaySwitchParams,
    YSwitchParams,
    DoubleSlipParams,
    CrossingParams,
    parse_component,
    parse_track_system,
)
from .config import SnapConfig, get_snap_config, set_snap_config
from .geometry import ComponentGeometry, Connector, GeometryCache, geometry_of
from .transform import Pose, to_world, to_local, world_connectors
from .layout import (
    Connection,
    EndpointRef,
    Layout,
    LayoutInvariantError,
    PlacedItem,
    check_invariants,
    empty_layout,
)
from .connections import (
    ConnectOK,
    ConnectFail,
    connect,
    disconnect,
    delete_item,
    connected_group,
    group_partition,
)
from .group_mover import move_group, rotate_group
from .snapping import SnapResult, find_snap
from .editor import (
    EditOK,
    EditFail,
    DragPreview,
    LayoutEditor,
    add_item,
    preview_drag,
    commit_drag,
    rotate_item,
    connect_endpoints,
    disconnect_endpoints,
    remove_item,
    toggle_grounded,
)
from .serialization import (
    Project,
    ImportOK,
    ImportFail,
    LayoutImportError,
    new_project,
    layout_to_dict,
    layout_from_dict,
    export_project,
    parse_project_import,
)
from .svg import generate_svg_document
from .usage import TrackUsageSummary, summarize_usage

__all__ = [
    'CatalogError',
    'TrackComponentDefinition',
    'TrackSystemDefinition',
    'InvalidParams',
    'SimpleSwitchParams',
    'CurvedSwitchParams',
    'ThreeWaySwitchParams',
    'YSwitchParams',
    'DoubleSlipParams',
    'CrossingParams',
    'parse_component',
    'parse_track_system',
    'SnapConfig',
    'get_snap_config',
    'set_snap_config',
    'ComponentGeometry',
    'Connector',
    'GeometryCache',
    'geometry_of',
    'Pose',
    'to_world',
    'to_local',
    'world_connectors',
    'Connection',
    'EndpointRef',
    'Layout',
    'LayoutInvariantError',
    'PlacedItem',
    'check_invariants',
    'empty_layout',
    'ConnectOK',
    'ConnectFail',
    'connect',
    'disconnect',
    'delete_item',
    'connected_group',
    'group_partition',
    'move_group',
    'rotate_group',
    'SnapResult',
    'find_snap',
    'EditOK',
    'EditFail',
    'DragPreview',
    'LayoutEditor',
    'add_item',
    'preview_drag',
    'commit_drag',
    'rotate_item',
    'connect_endpoints',
    'disconnect_endpoints',
    'remove_item',
    'toggle_grounded',
    'Project',
    'ImportOK',
    'ImportFail',
    'LayoutImportError',
    'new_project',
    'layout_to_dict',
    'layout_from_dict',
    'export_project',
    'parse_project_import',
    'generate_svg_document',
    'TrackUsageSummary',
    'summarize_usage',
]
