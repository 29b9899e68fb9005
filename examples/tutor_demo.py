"""Minimal demonstration of the tutoring backend."""

from tutor_core.api import service

if __name__ == "__main__":
    print("Providers:", service.provider_health())
    reply = service.tutor_chat("Can you explain what a linear equation is?", user_id="demo")
    print("Tutor:", reply["data"]["message"])
    quiz = service.generate_quiz("linear equations", "easy")
    print("Quiz:", quiz["quiz"]["question"], quiz["quiz"]["options"])
