# Service layer for the Crane Commander NiceGUI client
# - session:    Connecting/Open/Closed state machine owning the JointState
# - transport:  WebSocket channel to the crane controller
# - crane_link: reconnecting supervisor and the module-level `link`
