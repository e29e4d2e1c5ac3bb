"""
Voice assistant for the AI coding assistant.

Continuous speech capture -> command interpretation -> host actions, and
speech output of assistant responses.

- The session controller owns every device resource (capture session,
  microphone stream, analyser, current utterance)
- Devices are reached only through the SpeechPlatform capability interface
- All behavior is observable via structured events
"""
