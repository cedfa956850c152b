# Signaling relay package
#
# Provides:
#  - PeerRegistry: peer id -> open channel bookkeeping
#  - wire codec for JSON signaling envelopes
#  - MessageRouter / AdmissionPolicy: direct forwards, random offer pairing
#  - ConnectionLifecycleManager: /ws/<peerId> admission and cleanup
#
# See rendezvous/signaling/service.py for the facade used by the web app.
